"""
Claim document uploads: screening and storage.
Rejected files are dropped with a warning; they never fail the claim.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

from app.observability.metrics import uploads_rejected_total
from app.storage.artifact_store import ArtifactStore
from app.storage.paths import upload_path

logger = structlog.get_logger(__name__)


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    data: bytes
    # Size reported by the client when the body was left unread
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data) if self.declared_size is None else self.declared_size


@dataclass
class UploadScreening:
    accepted: list[IncomingFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _reject(screening: UploadScreening, f: IncomingFile, reason: str, message: str) -> None:
    uploads_rejected_total.labels(reason=reason).inc()
    screening.warnings.append(f"{f.filename}: {message}")
    logger.info("upload_rejected", file_name=f.filename, reason=reason, size=f.size)


def screen_uploads(
    files: Iterable[IncomingFile],
    allowed_types: Iterable[str],
    max_bytes: int,
    max_files: int,
) -> UploadScreening:
    """Split files into accepted ones and user-facing warnings for the rest."""
    allowed = {t.strip().lower() for t in allowed_types if t.strip()}
    screening = UploadScreening()
    for f in files:
        content_type = (f.content_type or "").lower()
        if content_type not in allowed:
            _reject(screening, f, "type", f"unsupported file type ({f.content_type or 'unknown'})")
        elif f.size == 0:
            _reject(screening, f, "empty", "file is empty")
        elif f.size > max_bytes:
            _reject(screening, f, "size", f"file exceeds the {max_bytes // (1024 * 1024)} MB limit")
        elif len(screening.accepted) >= max_files:
            _reject(screening, f, "count", f"only {max_files} files are accepted per claim")
        else:
            screening.accepted.append(f)
    return screening


def store_uploads(store: ArtifactStore, claim_id: str, files: Iterable[IncomingFile]) -> list[str]:
    """Write accepted files under the claim's folder. Returns relative paths in upload order."""
    paths = []
    for index, f in enumerate(files, 1):
        path = upload_path(claim_id, index, f.filename)
        store.save_bytes(path, f.data)
        paths.append(path)
    if paths:
        logger.info("uploads_stored", claim_id=claim_id, count=len(paths))
    return paths
