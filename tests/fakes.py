"""
Fake external collaborators and data builders for the test suite.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from openai import OpenAIError

from app.consent.recorder import ConsentRecorder
from app.integrations.base import IntegrationError
from app.integrations.esign import EnvelopeStatus, SigningSession
from app.models.enums import ConsentType
from app.schemas.consent import ConsentInput


# ── Fake collaborators ───────────────────────────────────────

class FakeCompletions:
    """Stands in for AsyncOpenAI().chat.completions."""

    def __init__(self):
        self.replies: list = []
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else '{"isEligible": false, "confidence": 0.5, "reason": "unclear"}'
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def reply_with(self, *replies):
        self.completions.replies.extend(replies)

    def fail_with(self, message: str = "provider down"):
        self.completions.replies.append(OpenAIError(message))


class RecordingCollaborator:
    """Records every awaited call; raises IntegrationError for names listed in ``failing``."""

    provider = "fake"

    def __init__(self, *failing: str):
        self.failing = set(failing)
        self.calls: list[tuple[str, tuple]] = []

    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if name in self.failing:
            raise IntegrationError(self.provider, name, "simulated failure")

    def called(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


class FakeNotifier(RecordingCollaborator):
    provider = "smtp"

    async def send_claim_confirmation(self, claim):
        self._record("send_claim_confirmation", claim.claim_id)

    async def send_status_update(self, claim, notes=None):
        self._record("send_status_update", claim.claim_id, claim.status, notes)

    async def send_commission_invoice(self, claim):
        self._record("send_commission_invoice", claim.claim_id)

    async def send_payment_confirmation(self, claim, payment):
        self._record("send_payment_confirmation", claim.claim_id, payment.net_amount)


class FakeCrm(RecordingCollaborator):
    provider = "airtable"

    async def create_claim_record(self, claim):
        self._record("create_claim_record", claim.claim_id)
        return "rec123"

    async def update_claim_record(self, claim_id, updates):
        self._record("update_claim_record", claim_id, updates)
        return "rec123"

    async def create_payment_record(self, claim, payment):
        self._record("create_payment_record", claim.claim_id)
        return "recPay"


class FakeESign(RecordingCollaborator):
    provider = "docusign"

    def __init__(self, *failing: str, envelope_status: str = "completed"):
        super().__init__(*failing)
        self.envelope_status = envelope_status

    async def create_poa_envelope(self, request):
        self._record("create_poa_envelope", request.claim_id)
        return SigningSession(
            envelope_id=f"env-{request.claim_id}",
            signing_url="https://sign.example/session",
            status="sent",
        )

    async def get_envelope_status(self, envelope_id):
        self._record("get_envelope_status", envelope_id)
        return EnvelopeStatus(
            status=self.envelope_status, completed=self.envelope_status == "completed"
        )

    async def download_signed_document(self, envelope_id):
        self._record("download_signed_document", envelope_id)
        return b"%PDF-1.4 signed"


# ── Data helpers ─────────────────────────────────────────────

def claim_payload(**overrides) -> dict:
    payload = {
        "passenger_name": "Jane Doe",
        "email": "jane@example.com",
        "flight_number": "AC871",
        "flight_date": "2025-03-14",
        "departure_airport": "YUL",
        "arrival_airport": "CDG",
        "issue_type": "delayed",
        "delay_duration": "6-9",
        "delay_reason": "crew_scheduling",
    }
    payload.update(overrides)
    return payload


def registration_consents(recorder: ConsentRecorder, email: str, name: str = "Jane Doe") -> None:
    for consent_type in (ConsentType.TERMS, ConsentType.PRIVACY, ConsentType.DATA_RETENTION):
        recorder.record(
            ConsentInput(consent_type=consent_type, user_email=email, user_name=name, agreed=True)
        )


class TickingClock:
    """Advances one second per call so consent record names never repeat."""

    def __init__(self, start: datetime = datetime(2025, 3, 14, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


def fail_on_write(store, monkeypatch, failing_call: int) -> None:
    """Make the store's ``failing_call``-th JSON write hit a full disk."""
    save_json = store.save_json
    calls = []

    def save(path, data):
        calls.append(path)
        if len(calls) == failing_call:
            raise OSError(28, "No space left on device")
        return save_json(path, data)

    monkeypatch.setattr(store, "save_json", save)
