"""
HTTP tests for claim submission, lookup, status changes and signing.
"""

import io
import json
from decimal import Decimal

from fastapi import UploadFile
from starlette.datastructures import Headers

from app.api.claims import incoming_file
from app.claims.uploads import screen_uploads
from tests.fakes import claim_payload, registration_consents

ELIGIBLE_REPLY = '{"isEligible": true, "confidence": 0.9, "reason": "within carrier control", "compensationAmount": 700}'


def submit(client, files=None, **overrides):
    return client.post(
        "/api/claims",
        data={"claim": json.dumps(claim_payload(**overrides))},
        files=files or [],
    )


def outcomes(body) -> dict:
    return {s["name"]: s["outcome"] for s in body["side_effects"]}


class TestSubmitClaim:

    def test_requires_registration_consent(self, client):
        response = submit(client)
        assert response.status_code == 400
        assert "terms" in response.json()["detail"]

    def test_submit_with_documents(self, client, recorder, fake_openai, upload_store):
        registration_consents(recorder, "jane@example.com")
        fake_openai.reply_with(ELIGIBLE_REPLY)

        response = submit(
            client,
            files=[
                ("documents", ("pass.pdf", b"%PDF-1.4", "application/pdf")),
                ("documents", ("notes.txt", b"hello", "text/plain")),
            ],
        )
        assert response.status_code == 200
        body = response.json()
        assert body["claim_id"].startswith("YUL-")
        assert body["status"] == "submitted"
        assert Decimal(body["compensation_amount"]) == Decimal("700")
        assert Decimal(body["commission_amount"]) == Decimal("105")
        assert body["documents_urls"] == [f"{body['claim_id']}/01_pass.pdf"]
        assert body["warnings"] == ["notes.txt: unsupported file type (text/plain)"]
        assert outcomes(body) == {
            "eligibility": "succeeded",
            "crm_sync": "succeeded",
            "confirmation_email": "succeeded",
        }

    def test_invalid_fields_are_400(self, client, recorder):
        registration_consents(recorder, "jane@example.com")
        response = submit(client, email="not-an-email", flight_date="14/03/2025")
        assert response.status_code == 400
        fields = {tuple(e["loc"]) for e in response.json()["detail"]}
        assert ("email",) in fields
        assert ("flight_date",) in fields

    def test_malformed_json_is_400(self, client):
        response = client.post("/api/claims", data={"claim": "{not json"})
        assert response.status_code == 400

    def test_poa_request_records_consent(self, client, recorder):
        registration_consents(recorder, "jane@example.com")
        response = submit(client, poa_requested=True)
        assert response.status_code == 200
        claim_id = response.json()["claim_id"]
        poa = [r for r in recorder.audit_trail("jane@example.com") if r.claim_id == claim_id]
        assert len(poa) == 1
        assert poa[0].consent_type.value == "power-of-attorney"


class TestIncomingFile:

    def upload(self, body: io.BytesIO, size: int) -> UploadFile:
        return UploadFile(
            body, size=size, filename="scan.pdf", headers=Headers({"content-type": "application/pdf"})
        )

    async def test_oversized_upload_is_not_read(self):
        body = io.BytesIO(b"x" * 64)
        incoming = await incoming_file(self.upload(body, 64), max_bytes=32)
        assert incoming.data == b""
        assert incoming.size == 64
        assert body.tell() == 0

        screening = screen_uploads([incoming], ("application/pdf",), 32, 5)
        assert screening.accepted == []
        assert "exceeds" in screening.warnings[0]

    async def test_upload_within_limit_is_read(self):
        incoming = await incoming_file(self.upload(io.BytesIO(b"%PDF-1.4"), 8), max_bytes=32)
        assert incoming.data == b"%PDF-1.4"
        assert incoming.size == 8


class TestLookup:

    def test_by_email_and_id(self, client, recorder):
        registration_consents(recorder, "jane@example.com")
        first = submit(client).json()["claim_id"]
        second = submit(client).json()["claim_id"]

        by_email = client.get("/api/claims/jane@example.com").json()
        assert [c["claim_id"] for c in by_email] == [second, first]

        by_id = client.get(f"/api/claims/{first}").json()
        assert [c["claim_id"] for c in by_id] == [first]

        assert client.get("/api/claims/YUL-2025-0000000000").json() == []

    def test_status_endpoint(self, client, recorder):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client).json()["claim_id"]

        body = client.get(f"/api/claims/status/{claim_id}").json()
        assert body["status"] == "submitted"
        assert body["status_history"][0]["notes"] == "Claim submitted successfully"
        assert client.get("/api/claims/status/YUL-2025-0000000000").status_code == 404


class TestStatusUpdate:

    def test_requires_admin(self, client, recorder, junior_headers):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client).json()["claim_id"]
        url = f"/api/claims/{claim_id}/status"

        assert client.patch(url, json={"status": "under-review"}).status_code == 401
        assert client.patch(
            url, json={"status": "under-review"}, headers={"X-User-Email": "nobody@example.com"}
        ).status_code == 403
        assert client.patch(url, json={"status": "under-review"}, headers=junior_headers).status_code == 200

    def test_transitions(self, client, recorder, admin_headers, notifier):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client).json()["claim_id"]
        url = f"/api/claims/{claim_id}/status"

        skipped = client.patch(url, json={"status": "paid"}, headers=admin_headers)
        assert skipped.status_code == 400

        review = client.patch(
            url, json={"status": "under-review", "notes": "checking"}, headers=admin_headers
        )
        assert review.status_code == 200
        latest = review.json()["status_history"][-1]
        assert (latest["status"], latest["notes"]) == ("under-review", "checking")
        assert outcomes(review.json()) == {"status_email": "succeeded"}
        assert notifier.called("send_status_update") == 1

    def test_unknown_claim(self, client, admin_headers):
        response = client.patch(
            "/api/claims/YUL-2025-0000000000/status", json={"status": "under-review"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_unknown_status_rejected(self, client, admin_headers):
        response = client.patch(
            "/api/claims/YUL-2025-0000000000/status", json={"status": "archived"},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestSigning:

    def test_poa_flow(self, client, recorder, upload_store):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client).json()["claim_id"]

        session = client.post("/api/esign/poa", json={"claim_id": claim_id})
        assert session.status_code == 200
        envelope_id = session.json()["envelope_id"]

        ignored = client.post(
            "/api/esign/callback", json={"envelope_id": envelope_id, "event": "envelope-sent"}
        )
        assert ignored.json() == {"success": True, "poa_signed": False, "claim_id": None}

        done = client.post(
            "/api/esign/callback", json={"envelope_id": envelope_id, "event": "envelope-completed"}
        )
        assert done.json() == {"success": True, "poa_signed": True, "claim_id": claim_id}

        claim = client.get(f"/api/claims/{claim_id}").json()[0]
        assert claim["poa_signed"] is True
        assert upload_store.load_bytes(claim["poa_document_url"]) == b"%PDF-1.4 signed"

    def test_poa_for_unknown_claim(self, client):
        response = client.post("/api/esign/poa", json={"claim_id": "YUL-2025-0000000000"})
        assert response.status_code == 404

    def test_provider_failure_is_502(self, client, recorder, esign):
        registration_consents(recorder, "jane@example.com")
        claim_id = submit(client).json()["claim_id"]
        esign.failing.add("create_poa_envelope")
        response = client.post("/api/esign/poa", json={"claim_id": claim_id})
        assert response.status_code == 502

    def test_callback_unknown_envelope(self, client):
        response = client.post(
            "/api/esign/callback", json={"envelope_id": "env-missing", "event": "envelope-completed"}
        )
        assert response.status_code == 404
