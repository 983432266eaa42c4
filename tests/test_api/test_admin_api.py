"""
HTTP tests for the admin surface.
"""

import io
import json
from decimal import Decimal

from openpyxl import load_workbook

from app.api.admin import ERASED_NAME, erased_email
from tests.fakes import claim_payload, fail_on_write, registration_consents

ELIGIBLE_REPLY = '{"isEligible": true, "confidence": 0.9, "reason": "ok", "compensationAmount": 700}'


def submit(client, **overrides):
    response = client.post("/api/claims", data={"claim": json.dumps(claim_payload(**overrides))})
    assert response.status_code == 200, response.text
    return response.json()["claim_id"]


def register(client, email, first="Jane", last="Doe"):
    response = client.post("/api/register", json={
        "first_name": first,
        "last_name": last,
        "email": email,
        "terms_accepted": True,
        "privacy_accepted": True,
        "data_retention_accepted": True,
    })
    assert response.status_code == 200, response.text
    return response.json()["user"]


def advance(client, headers, claim_id, *statuses):
    for s in statuses:
        response = client.patch(
            f"/api/admin/claims/{claim_id}/status", json={"status": s}, headers=headers
        )
        assert response.status_code == 200, response.text
    return response.json()


class TestClaimList:

    def test_guarded(self, client, junior_headers):
        assert client.get("/api/admin/claims").status_code == 401
        assert client.get(
            "/api/admin/claims", headers={"X-User-Email": "ghost@example.com"}
        ).status_code == 403
        assert client.get("/api/admin/claims", headers=junior_headers).status_code == 200

    def test_filter_and_search(self, client, recorder, admin_headers):
        registration_consents(recorder, "jane@example.com")
        registration_consents(recorder, "max@example.com", "Max Power")
        reviewed = submit(client)
        submit(client, email="max@example.com", passenger_name="Max Power", flight_number="WS123")
        advance(client, admin_headers, reviewed, "under-review")

        body = client.get("/api/admin/claims", headers=admin_headers).json()
        assert body["total"] == 2

        body = client.get("/api/admin/claims?status=under-review", headers=admin_headers).json()
        assert [c["claim_id"] for c in body["claims"]] == [reviewed]

        body = client.get("/api/admin/claims?search=ws12", headers=admin_headers).json()
        assert [c["passenger_name"] for c in body["claims"]] == ["Max Power"]

        body = client.get("/api/admin/claims?limit=1", headers=admin_headers).json()
        assert len(body["claims"]) == 1
        assert body["total"] == 2

    def test_search_treats_wildcards_literally(self, client, recorder, admin_headers):
        registration_consents(recorder, "jane@example.com")
        submit(client)
        underscored = submit(client, passenger_name="Jane_Doe")

        body = client.get("/api/admin/claims", params={"search": "_"}, headers=admin_headers).json()
        assert [c["claim_id"] for c in body["claims"]] == [underscored]

        body = client.get("/api/admin/claims", params={"search": "%"}, headers=admin_headers).json()
        assert body["total"] == 0

    def test_export_xlsx(self, client, recorder, admin_headers):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client)

        response = client.get("/api/admin/claims/export/xlsx", headers=admin_headers)
        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]

        sheet = load_workbook(io.BytesIO(response.content)).active
        rows = list(sheet.iter_rows(values_only=True))
        assert rows[0][0] == "Claim ID"
        assert rows[1][0] == claim_id


class TestCompensationDecision:

    def test_override(self, client, recorder, admin_headers):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client)
        response = client.patch(
            f"/api/admin/claims/{claim_id}/compensation",
            json={"compensation_amount": "1000", "meal_voucher_amount": "50"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert Decimal(response.json()["compensation_amount"]) == Decimal("1000")
        assert Decimal(response.json()["commission_amount"]) == Decimal("143")

    def test_paid_claim_frozen(self, client, recorder, admin_headers, fake_openai):
        registration_consents(recorder, "jane@example.com")
        fake_openai.reply_with(ELIGIBLE_REPLY)
        claim_id = submit(client)
        advance(client, admin_headers, claim_id, "under-review", "approved", "paid")
        response = client.patch(
            f"/api/admin/claims/{claim_id}/compensation",
            json={"compensation_amount": "10"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_negative_rejected(self, client, admin_headers):
        response = client.patch(
            "/api/admin/claims/YUL-2025-0000000000/compensation",
            json={"compensation_amount": "-5"},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestPayments:

    def test_paid_claim_creates_payment(self, client, recorder, admin_headers, fake_openai, notifier):
        registration_consents(recorder, "jane@example.com")
        fake_openai.reply_with(ELIGIBLE_REPLY)
        claim_id = submit(client)
        body = advance(client, admin_headers, claim_id, "under-review", "approved", "paid")
        assert {s["name"] for s in body["side_effects"]} >= {
            "crm_payment", "payment_confirmation_email", "commission_invoice_email",
        }

        [payment] = client.get("/api/admin/payments", headers=admin_headers).json()
        assert payment["claim_id"] == claim_id
        assert Decimal(payment["net_amount"]) == Decimal("595")
        assert payment["payment_method"] == "passenger_invoice"
        assert payment["status"] == "completed"
        assert notifier.called("send_commission_invoice") == 1


class TestUsers:

    def test_register_and_setup_admin(self, client, recorder):
        user = register(client, "Owner@Example.com", "Olga", "Owner")
        assert user["email"] == "owner@example.com"
        assert user["role"] == "user"
        assert recorder.validate("owner@example.com", ["terms", "privacy", "data-retention"]).valid

        promoted = client.post("/api/setup-admin", json={"email": "owner@example.com"})
        assert promoted.status_code == 200
        assert promoted.json()["role"] == "senior_admin"

        again = client.post("/api/setup-admin", json={"email": "owner@example.com"})
        assert again.status_code == 403

    def test_register_rejects_missing_consent_and_duplicates(self, client):
        response = client.post("/api/register", json={
            "first_name": "A", "last_name": "B", "email": "a@example.com",
            "terms_accepted": True, "privacy_accepted": False, "data_retention_accepted": True,
        })
        assert response.status_code == 400
        assert "privacy" in response.json()["detail"]

        register(client, "a@example.com")
        duplicate = client.post("/api/register", json={
            "first_name": "A", "last_name": "B", "email": "A@example.com",
            "terms_accepted": True, "privacy_accepted": True, "data_retention_accepted": True,
        })
        assert duplicate.status_code == 400

    def test_register_consent_failure_keeps_nothing(self, client, recorder, consent_store, monkeypatch):
        fail_on_write(consent_store, monkeypatch, failing_call=3)
        response = client.post("/api/register", json={
            "first_name": "Lee", "last_name": "Late", "email": "late@example.com",
            "terms_accepted": True, "privacy_accepted": True, "data_retention_accepted": True,
        })
        assert response.status_code == 500
        assert recorder.audit_trail("late@example.com") == []

        monkeypatch.undo()
        user = register(client, "late@example.com", "Lee", "Late")
        assert user["email"] == "late@example.com"

    def test_role_changes_need_senior(self, client, admin_headers, junior_headers):
        user = register(client, "staff@example.com")
        url = f"/api/admin/users/{user['id']}/role"

        assert client.patch(url, json={"role": "junior_admin"}, headers=junior_headers).status_code == 403
        response = client.patch(url, json={"role": "junior_admin"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "junior_admin"

    def test_senior_cannot_demote_self(self, client, admin_headers):
        users = client.get("/api/admin/users", headers=admin_headers).json()
        me = next(u for u in users if u["email"] == "boss@example.com")
        response = client.patch(
            f"/api/admin/users/{me['id']}/role", json={"role": "user"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_erasure_keeps_claims(self, client, recorder, admin_headers):
        user = register(client, "jane@example.com")
        claim_id = submit(client)

        response = client.post(f"/api/admin/users/{user['id']}/erase", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["claims_updated"] == 1

        placeholder = erased_email("jane@example.com")
        assert client.get("/api/claims/jane@example.com").json() == []
        [claim] = client.get(f"/api/claims/{claim_id}").json()
        assert claim["passenger_name"] == ERASED_NAME
        assert claim["email"] == placeholder

        # consent records are legal proof and stay untouched
        trail = recorder.audit_trail("jane@example.com")
        assert {r.consent_type.value for r in trail} == {
            "terms", "privacy", "data-retention", "marketing",
        }

    def test_unknown_user(self, client, admin_headers):
        assert client.post("/api/admin/users/9999/erase", headers=admin_headers).status_code == 404


class TestConsentAudit:

    def test_trail_and_export(self, client, recorder, admin_headers):
        registration_consents(recorder, "jane@example.com")
        trail = client.get("/api/admin/consents/jane@example.com", headers=admin_headers).json()
        assert [r["consent_type"] for r in trail] == ["data-retention", "privacy", "terms"]

        exported = client.get("/api/admin/consents", headers=admin_headers).json()
        assert len(exported) == 3


class TestFaqAdmin:

    def test_create_update_delete(self, client, admin_headers):
        created = client.post("/api/admin/faqs", json={
            "question": "Do you handle lost baggage?",
            "answer": "No, only delays, cancellations and denied boarding.",
            "category": "scope",
        }, headers=admin_headers)
        assert created.status_code == 201
        faq_id = created.json()["id"]

        assert [f["id"] for f in client.get("/api/faqs?search=BAGGAGE").json()] == [faq_id]

        updated = client.patch(f"/api/admin/faqs/{faq_id}", json={"order": 3}, headers=admin_headers)
        assert updated.json()["order"] == 3

        assert client.delete(f"/api/admin/faqs/{faq_id}", headers=admin_headers).status_code == 204
        assert client.get("/api/faqs?search=baggage").json() == []
        assert client.delete("/api/admin/faqs/9999", headers=admin_headers).status_code == 404

    def test_search_treats_wildcards_literally(self, client, admin_headers):
        for question in ("Is 100% of the fare refunded?", "Can I claim for a friend?"):
            client.post("/api/admin/faqs", json={
                "question": question, "answer": "Yes.", "category": "general",
            }, headers=admin_headers)

        matched = client.get("/api/faqs", params={"search": "%"}).json()
        assert [f["question"] for f in matched] == ["Is 100% of the fare refunded?"]
        assert client.get("/api/faqs", params={"search": "_"}).json() == []
