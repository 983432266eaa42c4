"""
HTTP tests for the calculator, content, consent and health endpoints.
"""

from decimal import Decimal

import pytest

from app.content.assistant import FALLBACK_MESSAGE


class TestCalculateCompensation:

    def test_large_airline_by_name(self, client, fake_openai):
        fake_openai.reply_with("Here is how it works.")
        response = client.post("/api/calculate-compensation", json={
            "airline": "Air Canada", "delay_hours": 7, "delay_reason": "crew_scheduling",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["eligible"] is True
        assert body["airline_category"] == "large"
        assert Decimal(body["compensation_amount"]) == Decimal("700")
        assert Decimal(body["commission_amount"]) == Decimal("105")
        assert Decimal(body["final_amount"]) == Decimal("595")
        assert body["explanation"] == "Here is how it works."

    def test_voucher_deducted_before_commission(self, client):
        response = client.post("/api/calculate-compensation", json={
            "airline_category": "large", "delay_hours": 3, "delay_reason": "overbooking",
            "meal_voucher": 100,
        })
        body = response.json()
        assert Decimal(body["compensation_amount"]) == Decimal("400")
        assert Decimal(body["meal_voucher_deduction"]) == Decimal("100")
        assert Decimal(body["commission_amount"]) == Decimal("45")
        assert Decimal(body["final_amount"]) == Decimal("255")

    def test_extraordinary_reason_pays_nothing(self, client, fake_openai):
        response = client.post("/api/calculate-compensation", json={
            "airline_category": "small", "delay_hours": 10, "delay_reason": "weather",
            "meal_voucher": 20,
        })
        body = response.json()
        assert body["eligible"] is False
        assert Decimal(body["compensation_amount"]) == Decimal("0")
        assert Decimal(body["meal_voucher_deduction"]) == Decimal("0")
        assert fake_openai.completions.calls == []

    def test_explanation_falls_back(self, client, fake_openai):
        fake_openai.fail_with("rate limited")
        body = client.post("/api/calculate-compensation", json={
            "airline_category": "large", "delay_hours": 9, "delay_reason": "it_failure",
        }).json()
        assert body["explanation"].startswith("For your $1,000.00 compensation claim")

    def test_unknown_airline(self, client):
        response = client.post("/api/calculate-compensation", json={
            "airline": "Sky Pirates", "delay_hours": 5, "delay_reason": "overbooking",
        })
        assert response.status_code == 400

    @pytest.mark.parametrize("payload", [
        {"delay_hours": 5, "delay_reason": "overbooking"},
        {"airline_category": "large", "delay_hours": -1, "delay_reason": "overbooking"},
        {"airline_category": "large", "delay_hours": 5, "delay_reason": "aliens"},
    ])
    def test_invalid_queries(self, client, payload):
        assert client.post("/api/calculate-compensation", json=payload).status_code == 422


class TestChatbot:

    def test_answer(self, client, fake_openai):
        fake_openai.reply_with("  We charge 15%.  ")
        body = client.post("/api/chatbot", json={"query": "What do you charge?"}).json()
        assert body == {"message": "We charge 15%.", "is_helpful": True}
        system = fake_openai.completions.calls[0]["messages"][0]["content"]
        assert "15% commission" in system

    def test_provider_failure(self, client, fake_openai):
        fake_openai.fail_with("down")
        body = client.post("/api/chatbot", json={"query": "hello"}).json()
        assert body == {"message": FALLBACK_MESSAGE, "is_helpful": False}

    def test_unexpected_error_is_500_with_fallback(self, client):
        from app import dependencies
        from app.main import app

        class Broken:
            async def answer(self, query, context=None):
                raise RuntimeError("boom")

        app.dependency_overrides[dependencies.get_assistant] = lambda: Broken()
        response = client.post("/api/chatbot", json={"query": "hello"})
        assert response.status_code == 500
        assert response.json() == {"message": FALLBACK_MESSAGE, "is_helpful": False}


class TestFaqsAndVoiceSearch:

    @pytest.fixture
    def faqs(self, client, admin_headers):
        for i, (q, a) in enumerate([
            ("How long does a claim take?", "Most airlines answer within 30 days."),
            ("What does it cost?", "A 15% commission on successful claims."),
        ]):
            client.post("/api/admin/faqs", json={
                "question": q, "answer": a, "category": "general", "order": i,
            }, headers=admin_headers)

    def test_list_in_order(self, client, faqs):
        questions = [f["question"] for f in client.get("/api/faqs").json()]
        assert questions == ["How long does a claim take?", "What does it cost?"]

    def test_voice_search_prefers_faqs(self, client, faqs, fake_openai):
        body = client.post("/api/voice-search", json={"query": "commission"}).json()
        assert body["type"] == "faq"
        assert [f["question"] for f in body["faqs"]] == ["What does it cost?"]
        assert fake_openai.completions.calls == []

    def test_voice_search_falls_back_to_chatbot(self, client, faqs, fake_openai):
        fake_openai.reply_with("Bring your boarding pass.")
        body = client.post("/api/voice-search", json={"query": "boarding pass"}).json()
        assert body == {"type": "chatbot", "faqs": [], "response": "Bring your boarding pass."}


class TestStats:

    def test_empty(self, client):
        assert client.get("/api/stats").json() == {
            "total_claims": 0, "success_rate": 0, "avg_compensation": 580, "commission_rate": 15,
        }


class TestConsentEndpoints:

    def test_documents(self, client):
        documents = client.get("/api/consent/documents").json()
        assert {d["type"] for d in documents} == {
            "terms", "privacy", "data-retention", "power-of-attorney", "marketing",
        }
        poa = client.get("/api/consent/documents/power-of-attorney").json()
        assert poa["mandatory"] is True
        assert client.get("/api/consent/documents/cookies").status_code == 422

    def test_record_fills_client_details(self, client, consent_store):
        response = client.post(
            "/api/consent/record",
            json={
                "consent_type": "marketing",
                "user_email": "jane@example.com",
                "user_name": "Jane Doe",
                "agreed": True,
            },
            headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )
        assert response.status_code == 201
        stored = consent_store.load_json(response.json()["record_id"])
        assert stored["ip_address"] == "203.0.113.9"
        assert stored["user_agent"] == "pytest-browser"

    @pytest.mark.parametrize("consent_type", ["terms", "privacy", "data-retention", "power-of-attorney"])
    def test_record_refuses_mandatory_types(self, client, recorder, consent_type):
        response = client.post("/api/consent/record", json={
            "consent_type": consent_type,
            "user_email": "jane@example.com",
            "user_name": "Jane Doe",
            "agreed": True,
        })
        assert response.status_code == 403
        assert recorder.audit_trail("jane@example.com") == []


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    def test_ready(self, client):
        assert client.get("/health/ready").json() == {"ready": True}

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
