"""
Deterministic path and filename generation for stored artifacts.
All paths are relative to the owning store's root.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

NO_CLAIM = "NO_CLAIM"
CONSENT_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_EMAIL_UNSAFE = re.compile(r"[^a-zA-Z0-9@.\-]")
_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_CLAIM_UNSAFE = re.compile(r"[^a-zA-Z0-9\-]")
_FILENAME_UNSAFE = re.compile(r"[^a-zA-Z0-9._\-]")


def sanitize_email(email: str) -> str:
    return _EMAIL_UNSAFE.sub("_", email.strip().lower())


def sanitize_name(name: str) -> str:
    return _WHITESPACE.sub("_", _NAME_UNSAFE.sub("_", name.strip()))


def sanitize_claim_id(claim_id: Optional[str]) -> str:
    if not claim_id:
        return NO_CLAIM
    return _CLAIM_UNSAFE.sub("_", claim_id)


def consent_record_filename(
    consent_type: str,
    name: str,
    email: str,
    claim_id: Optional[str],
    timestamp: datetime,
) -> str:
    """{type}_{name}_{email}_{claimId|NO_CLAIM}_{yyyy-MM-dd_HH-mm-ss}.json"""
    return "_".join([
        consent_type,
        sanitize_name(name),
        sanitize_email(email),
        sanitize_claim_id(claim_id),
        timestamp.strftime(CONSENT_TIMESTAMP_FORMAT),
    ]) + ".json"


def consent_document_filename(consent_type: str, version: str) -> str:
    return f"{consent_type}_v{version}.md"


def upload_path(claim_id: str, index: int, file_name: Optional[str]) -> str:
    """Path for an uploaded claim document."""
    safe = _FILENAME_UNSAFE.sub("_", Path(file_name or "document").name) or "document"
    return f"{claim_id}/{index:02d}_{safe}"


def ensure_parent_dirs(artifact_root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = Path(artifact_root) / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
