"""
Consent recorder: one immutable JSON snapshot per consent action.

Record names are deterministic:
    {type}_{name}_{email}_{claimId|NO_CLAIM}_{yyyy-MM-dd_HH-mm-ss}.json
so two consents in the same second for different claims never collide.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import structlog
from pydantic import ValidationError

from app.models.enums import ConsentType
from app.observability.metrics import consent_records_total
from app.schemas.consent import ConsentInput, ConsentRecord, ConsentValidation
from app.storage.artifact_store import ArtifactStore
from app.storage.paths import consent_document_filename, consent_record_filename, sanitize_email

logger = structlog.get_logger(__name__)


class ConsentStorageError(Exception):
    """Raised when a consent record cannot be written or read."""


class ConsentRecordConflict(ConsentStorageError):
    """Raised when a record with the same deterministic name already exists."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Consent record already exists: {filename}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsentRecorder:
    """Writes and reads consent records; never updates or deletes one."""

    def __init__(
        self,
        records: ArtifactStore,
        documents_root: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.records = records
        self.documents_root = documents_root
        self._clock = clock

    def _snapshot(self, consent: ConsentInput) -> ConsentRecord:
        now = self._clock().replace(microsecond=0)
        filename = consent_record_filename(
            consent.consent_type.value,
            consent.user_name,
            consent.user_email,
            consent.claim_id,
            now,
        )
        return ConsentRecord(
            **consent.model_dump(),
            timestamp=now,
            filename=filename,
            recorded_at=self._clock(),
            document_path=f"{self.documents_root}/"
            + consent_document_filename(consent.consent_type.value, consent.document_version),
        )

    def _recorded(self, snapshot: ConsentRecord) -> None:
        consent_records_total.labels(consent_type=snapshot.consent_type.value).inc()
        logger.info(
            "consent_recorded",
            record_id=snapshot.filename,
            consent_type=snapshot.consent_type.value,
            claim_id=snapshot.claim_id,
            agreed=snapshot.agreed,
        )

    def record(self, consent: ConsentInput) -> str:
        """Persist one consent action. Returns the record id (its filename)."""
        snapshot = self._snapshot(consent)
        filename = snapshot.filename
        try:
            self.records.save_json(filename, snapshot.model_dump(mode="json"))
        except FileExistsError as e:
            raise ConsentRecordConflict(filename) from e
        except OSError as e:
            logger.error("consent_write_failed", filename=filename, error=str(e))
            raise ConsentStorageError(f"Could not write consent record {filename}: {e}") from e

        self._recorded(snapshot)
        return filename

    def record_required(self, consent: ConsentInput) -> str:
        """Legal precondition: any storage failure propagates to the caller."""
        return self.record(consent)

    def record_required_batch(self, consents: Iterable[ConsentInput]) -> list[str]:
        """
        Record several mandatory consents together: either every record is
        written or none is, and the failure propagates like record_required.
        """
        snapshots = [self._snapshot(c) for c in consents]
        try:
            names = self.records.save_json_batch(
                {s.filename: s.model_dump(mode="json") for s in snapshots}
            )
        except FileExistsError as e:
            raise ConsentRecordConflict(e.filename or str(e)) from e
        except OSError as e:
            logger.error("consent_batch_write_failed", count=len(snapshots), error=str(e))
            raise ConsentStorageError(f"Could not write consent records: {e}") from e

        for snapshot in snapshots:
            self._recorded(snapshot)
        return names

    def record_optional(self, consent: ConsentInput) -> Optional[str]:
        """Informational/marketing consent: failures are logged and swallowed."""
        try:
            return self.record(consent)
        except ConsentStorageError as e:
            logger.warning(
                "optional_consent_not_recorded",
                consent_type=consent.consent_type.value,
                error=str(e),
            )
            return None

    def _load_all(self, names: Iterable[str]) -> list[ConsentRecord]:
        records = []
        for name in names:
            try:
                records.append(ConsentRecord.model_validate(self.records.load_json(name)))
            except (OSError, ValueError, ValidationError) as e:
                raise ConsentStorageError(f"Unreadable consent record {name}: {e}") from e
        return records

    def audit_trail(self, email: str) -> list[ConsentRecord]:
        """All records for a subject, newest first."""
        safe_email = sanitize_email(email)
        candidates = self.records.iter_names(pattern=f"*_{safe_email}_*.json")
        wanted = email.strip().lower()
        records = [r for r in self._load_all(candidates) if r.user_email.lower() == wanted]
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    def validate(self, email: str, required: Iterable[ConsentType]) -> ConsentValidation:
        """Report which required consent types lack an agreed record."""
        records = self.audit_trail(email)
        agreed = {r.consent_type for r in records if r.agreed}
        missing = [ConsentType(t) for t in required if ConsentType(t) not in agreed]
        return ConsentValidation(valid=not missing, missing=missing, records=records)

    def export(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[ConsentRecord]:
        """Every record whose timestamp falls in [start, end], oldest first."""
        records = self._load_all(self.records.iter_names(pattern="*.json"))
        if start is not None:
            records = [r for r in records if r.timestamp >= _aware(start)]
        if end is not None:
            records = [r for r in records if r.timestamp <= _aware(end)]
        return sorted(records, key=lambda r: r.timestamp)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
