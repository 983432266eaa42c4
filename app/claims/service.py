"""
Claims orchestration.

ClaimsService owns one request's database session and receives every
external collaborator through its constructor. Durable state is committed
before best-effort work runs; that work goes through an Outbox whose
results are handed back to the caller.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.claims import repository
from app.claims.eligibility import SOURCE_FALLBACK, EligibilityAssessor, FlightFacts
from app.claims.outbox import Outbox, SideEffectResult
from app.claims.uploads import IncomingFile, screen_uploads, store_uploads
from app.consent.recorder import ConsentRecorder
from app.integrations.base import IntegrationError, IntegrationNotConfigured
from app.integrations.crm import AirtableClient
from app.integrations.email import EmailNotifier
from app.integrations.esign import DocuSignClient, POASigningRequest, SigningSession
from app.models.enums import (
    REGISTRATION_CONSENTS,
    ClaimStatus,
    ConsentType,
    PaymentStatus,
)
from app.models.tables import Claim, Payment
from app.observability.metrics import (
    claim_status_transitions_rejected_total,
    claim_status_transitions_total,
    claims_submitted_total,
)
from app.rules.compensation import COMMISSION_RATE, compute_commission
from app.rules.status_machine import InvalidStatusTransition, history_entry, transition
from app.schemas.claims import ClaimCreate, ClaimStats
from app.schemas.consent import ConsentInput
from app.storage.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)

SUBMITTED_NOTE = "Claim submitted successfully"
POA_ENVELOPE_COMPLETED = "envelope-completed"

# Shown on the landing page until the first claim is paid
DEFAULT_AVERAGE_COMPENSATION = 580

PAYMENT_METHOD_POA = "poa_direct"
PAYMENT_METHOD_INVOICE = "passenger_invoice"


class ClaimValidationError(Exception):
    """Raised when a claim request is well-formed but not acceptable."""


class ClaimNotFound(Exception):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Claim not found: {identifier}")


class ConsentRequired(Exception):
    """Raised when the subject lacks a mandatory registration consent."""

    def __init__(self, missing: Iterable[ConsentType]):
        self.missing = [ConsentType(m) for m in missing]
        names = ", ".join(m.value for m in self.missing)
        super().__init__(f"Missing required consent: {names}")


@dataclass
class ClaimResult:
    claim: Claim
    warnings: list[str] = field(default_factory=list)
    side_effects: list[SideEffectResult] = field(default_factory=list)


@dataclass
class UploadLimits:
    allowed_types: tuple[str, ...] = ("application/pdf", "image/png", "image/jpeg", "image/jpg")
    max_bytes: int = 10 * 1024 * 1024
    max_files: int = 5


class ClaimsService:
    def __init__(
        self,
        session: AsyncSession,
        assessor: EligibilityAssessor,
        notifier: EmailNotifier,
        crm: AirtableClient,
        esign: DocuSignClient,
        consent: ConsentRecorder,
        uploads: ArtifactStore,
        limits: Optional[UploadLimits] = None,
        commission_rate: Decimal = COMMISSION_RATE,
        require_registration_consent: bool = True,
        consent_document_version: str = "1.0",
    ):
        self.session = session
        self.assessor = assessor
        self.notifier = notifier
        self.crm = crm
        self.esign = esign
        self.consent = consent
        self.uploads = uploads
        self.limits = limits or UploadLimits()
        self.commission_rate = commission_rate
        self.require_registration_consent = require_registration_consent
        self.consent_document_version = consent_document_version

    # ── Create ───────────────────────────────────────────────

    async def create_claim(
        self,
        data: ClaimCreate,
        files: Iterable[IncomingFile] = (),
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ClaimResult:
        if self.require_registration_consent:
            check = self.consent.validate(data.email, REGISTRATION_CONSENTS)
            if not check.valid:
                raise ConsentRequired(check.missing)

        screening = screen_uploads(
            files, self.limits.allowed_types, self.limits.max_bytes, self.limits.max_files
        )

        claim_id = repository.generate_claim_id()
        claim = Claim(
            claim_id=claim_id,
            passenger_name=data.passenger_name,
            email=str(data.email),
            flight_number=data.flight_number,
            flight_date=data.flight_date,
            airline=data.airline,
            departure_airport=data.departure_airport,
            arrival_airport=data.arrival_airport,
            issue_type=data.issue_type.value,
            delay_duration=data.delay_duration.value if data.delay_duration else None,
            delay_reason=data.delay_reason.value if data.delay_reason else None,
            meal_voucher_amount=data.meal_voucher_amount,
            status=ClaimStatus.SUBMITTED.value,
            status_history=[history_entry(ClaimStatus.SUBMITTED, SUBMITTED_NOTE)],
            documents_urls=[],
            poa_requested=data.poa_requested,
            poa_signed=False,
        )
        await repository.add_claim(self.session, claim)

        if data.poa_requested:
            try:
                self.consent.record_required(
                    ConsentInput(
                        consent_type=ConsentType.POWER_OF_ATTORNEY,
                        user_email=data.email,
                        user_name=data.passenger_name,
                        claim_id=claim_id,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        document_version=self.consent_document_version,
                        agreed=True,
                    )
                )
            except Exception:
                await self.session.rollback()
                logger.error("claim_poa_consent_failed", claim_id=claim_id)
                raise

        # Stored last so a refused consent leaves no files under the claim id
        try:
            claim.documents_urls = store_uploads(self.uploads, claim_id, screening.accepted)
        except OSError:
            await self.session.rollback()
            logger.error("claim_uploads_not_stored", claim_id=claim_id)
            raise

        await self.session.commit()
        claims_submitted_total.labels(issue_type=claim.issue_type).inc()
        logger.info(
            "claim_created",
            claim_id=claim_id,
            issue_type=claim.issue_type,
            documents=len(claim.documents_urls),
            poa_requested=claim.poa_requested,
        )

        outbox = Outbox()
        outbox.add("eligibility", lambda: self._assess_eligibility(claim))
        outbox.add("crm_sync", lambda: self.crm.create_claim_record(claim))
        outbox.add("confirmation_email", lambda: self.notifier.send_claim_confirmation(claim))
        side_effects = await outbox.dispatch()

        return ClaimResult(claim=claim, warnings=screening.warnings, side_effects=side_effects)

    async def _assess_eligibility(self, claim: Claim) -> str:
        verdict = await self.assessor.assess(FlightFacts.from_claim(claim))
        if verdict.source == SOURCE_FALLBACK:
            if not self.assessor.configured:
                raise IntegrationNotConfigured("openai", "assess_eligibility")
            raise IntegrationError("openai", "assess_eligibility", verdict.reason)

        claim.eligibility_validation = verdict.model_dump(mode="json")
        if verdict.is_eligible and verdict.compensation_amount:
            breakdown = compute_commission(
                verdict.compensation_amount, claim.meal_voucher_amount, self.commission_rate
            )
            claim.compensation_amount = breakdown.gross
            claim.commission_amount = breakdown.commission
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            # rollback expires the claim; reload the committed row for the remaining effects
            await self.session.refresh(claim)
            raise
        return "eligible" if verdict.is_eligible else "not eligible"

    # ── Read ─────────────────────────────────────────────────

    async def get_claims(self, identifier: str) -> list[Claim]:
        """Email -> all claims for it, newest first; otherwise a claim id -> [claim] or []."""
        identifier = identifier.strip()
        if "@" in identifier:
            return await repository.get_claims_by_email(self.session, identifier)
        claim = await repository.get_claim_by_claim_id(self.session, identifier)
        return [claim] if claim else []

    async def get_claim(self, claim_id: str, for_update: bool = False) -> Claim:
        claim = await repository.get_claim_by_claim_id(self.session, claim_id, for_update=for_update)
        if claim is None:
            raise ClaimNotFound(claim_id)
        return claim

    # ── Status ───────────────────────────────────────────────

    async def update_status(
        self, claim_id: str, status: ClaimStatus, notes: Optional[str] = None
    ) -> ClaimResult:
        claim = await self.get_claim(claim_id, for_update=True)
        previous = claim.status
        try:
            transition(claim, status, notes)
        except InvalidStatusTransition:
            claim_status_transitions_rejected_total.labels(
                from_status=previous, to_status=ClaimStatus(status).value
            ).inc()
            logger.warning(
                "claim_status_transition_rejected",
                claim_id=claim_id,
                from_status=previous,
                to_status=ClaimStatus(status).value,
            )
            raise

        payment = None
        if claim.status == ClaimStatus.PAID.value:
            payment = await repository.add_payment(self.session, self._payment_for(claim))

        await self.session.commit()
        claim_status_transitions_total.labels(from_status=previous, to_status=claim.status).inc()
        logger.info(
            "claim_status_updated", claim_id=claim_id, from_status=previous, to_status=claim.status
        )

        outbox = Outbox()
        outbox.add("status_email", lambda: self.notifier.send_status_update(claim, notes))
        if claim.status == ClaimStatus.APPROVED.value and claim.compensation_amount is not None:
            outbox.add("crm_status_sync", lambda: self.crm.update_claim_record(
                claim.claim_id,
                {
                    "Status": claim.status,
                    "Compensation Amount": float(claim.compensation_amount),
                    "Commission Amount": float(claim.commission_amount or 0),
                },
            ))
        if payment is not None:
            outbox.add("crm_payment", lambda: self.crm.create_payment_record(claim, payment))
            outbox.add(
                "payment_confirmation_email",
                lambda: self.notifier.send_payment_confirmation(claim, payment),
            )
            if not claim.poa_signed:
                outbox.add(
                    "commission_invoice_email", lambda: self.notifier.send_commission_invoice(claim)
                )
        side_effects = await outbox.dispatch()
        return ClaimResult(claim=claim, side_effects=side_effects)

    @staticmethod
    def _payment_for(claim: Claim) -> Payment:
        gross = claim.compensation_amount or Decimal("0")
        commission = claim.commission_amount or Decimal("0")
        return Payment(
            claim_pk=claim.id,
            claim_id=claim.claim_id,
            compensation_amount=gross,
            commission_amount=commission,
            net_amount=gross - commission,
            payment_method=PAYMENT_METHOD_POA if claim.poa_signed else PAYMENT_METHOD_INVOICE,
            status=PaymentStatus.COMPLETED.value,
        )

    async def apply_admin_decision(
        self,
        claim_id: str,
        compensation_amount: Decimal,
        meal_voucher: Optional[Decimal] = None,
    ) -> Claim:
        """Overwrite the assessed compensation with a reviewer's figure."""
        claim = await self.get_claim(claim_id, for_update=True)
        if claim.status == ClaimStatus.PAID.value:
            raise ClaimValidationError("Compensation of a paid claim cannot change")

        voucher = meal_voucher if meal_voucher is not None else claim.meal_voucher_amount
        try:
            breakdown = compute_commission(compensation_amount, voucher, self.commission_rate)
        except ValueError as e:
            raise ClaimValidationError(str(e)) from e

        claim.compensation_amount = breakdown.gross
        claim.commission_amount = breakdown.commission
        claim.meal_voucher_amount = voucher
        await self.session.commit()
        logger.info(
            "claim_compensation_overridden",
            claim_id=claim_id,
            compensation=str(breakdown.gross),
            commission=str(breakdown.commission),
        )
        return claim

    # ── Power of attorney ────────────────────────────────────

    async def request_poa(self, claim_id: str) -> SigningSession:
        claim = await self.get_claim(claim_id, for_update=True)
        session = await self.esign.create_poa_envelope(
            POASigningRequest(
                claim_id=claim.claim_id,
                passenger_name=claim.passenger_name,
                passenger_email=claim.email,
                compensation_amount=claim.compensation_amount or Decimal("0"),
                commission_amount=claim.commission_amount or Decimal("0"),
            )
        )
        claim.poa_requested = True
        claim.poa_envelope_id = session.envelope_id
        await self.session.commit()
        return session

    async def complete_poa(
        self,
        envelope_id: str,
        event: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[Claim]:
        """Handle a signing callback. Returns the claim when the POA became signed."""
        if event != POA_ENVELOPE_COMPLETED:
            logger.info("poa_callback_ignored", envelope_id=envelope_id, poa_event=event)
            return None

        envelope = await self.esign.get_envelope_status(envelope_id)
        if not envelope.completed:
            logger.info("poa_envelope_not_completed", envelope_id=envelope_id, status=envelope.status)
            return None

        claim = await repository.get_claim_by_envelope(self.session, envelope_id)
        if claim is None:
            raise ClaimNotFound(envelope_id)
        if claim.poa_signed:
            return claim

        # A callback retried after a failed commit finds the PDF already stored
        path = f"{claim.claim_id}/poa_{envelope_id}.pdf"
        if not self.uploads.exists(path):
            document = await self.esign.download_signed_document(envelope_id)
            self.uploads.save_bytes(path, document)
        claim.poa_document_url = path
        claim.poa_signed = True
        try:
            self.consent.record_required(
                ConsentInput(
                    consent_type=ConsentType.POWER_OF_ATTORNEY,
                    user_email=claim.email,
                    user_name=claim.passenger_name,
                    claim_id=claim.claim_id,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    document_version=self.consent_document_version,
                    agreed=True,
                )
            )
        except Exception:
            logger.error("poa_consent_failed", claim_id=claim.claim_id, envelope_id=envelope_id)
            await self.session.rollback()
            raise
        await self.session.commit()
        logger.info("poa_signed", claim_id=claim.claim_id, envelope_id=envelope_id)
        return claim

    # ── Stats ────────────────────────────────────────────────

    async def stats(self) -> ClaimStats:
        counts = await repository.claim_counts(self.session)
        total, paid = counts["total"], counts["paid"]
        average = counts["avg_paid_compensation"]
        return ClaimStats(
            total_claims=total,
            success_rate=round(paid / max(total, 1) * 100),
            avg_compensation=round(average) if average is not None else DEFAULT_AVERAGE_COMPENSATION,
            commission_rate=int(self.commission_rate * 100),
        )
