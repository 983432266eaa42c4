"""
Filesystem store for claim uploads and consent artifacts.
Write-once: nothing here overwrites or deletes a stored file, since uploads
and consent records fall under the claim retention rule. The one exception is
a failed batch, whose own files never reach a caller.
"""

import errno
import json
from pathlib import Path
from typing import Iterator, Optional

import structlog

from app.storage.paths import ensure_parent_dirs

logger = structlog.get_logger(__name__)


class ArtifactStore:
    """
    Save and load artifacts to/from storage.
    All paths are relative to the store root.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Save raw bytes (PDF, image). Returns the relative path."""
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        with full_path.open("xb") as fh:
            fh.write(data)
        logger.info("artifact_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def save_json(self, relative_path: str, data: dict) -> str:
        """
        Save a JSON artifact. Returns the relative path.
        Raises FileExistsError if the path is already taken.
        """
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        with full_path.open("x", encoding="utf-8") as fh:
            fh.write(json.dumps(data, default=str, indent=2))
        logger.info("artifact_saved_json", path=relative_path)
        return relative_path

    def save_json_batch(self, items: dict[str, dict]) -> list[str]:
        """
        Save several JSON artifacts as one unit. Every path is checked up front;
        if a write still fails, the files this call created are removed before
        the error propagates.
        """
        for relative_path in items:
            if self.exists(relative_path):
                raise FileExistsError(errno.EEXIST, "Artifact already exists", relative_path)

        written: list[str] = []
        try:
            for relative_path, data in items.items():
                try:
                    self.save_json(relative_path, data)
                except FileExistsError:
                    raise
                except OSError:
                    # a partial file from this call is ours to remove
                    self.full_path(relative_path).unlink(missing_ok=True)
                    raise
                written.append(relative_path)
        except OSError:
            for relative_path in written:
                self.full_path(relative_path).unlink(missing_ok=True)
            logger.warning("artifact_batch_discarded", paths=written)
            raise
        return written

    def save_text(self, relative_path: str, text: str, overwrite: bool = False) -> str:
        """Save a text artifact. Versioned documents may be rewritten in place."""
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        with full_path.open("w" if overwrite else "x", encoding="utf-8") as fh:
            fh.write(text)
        logger.info("artifact_saved_text", path=relative_path)
        return relative_path

    def load_bytes(self, relative_path: str) -> bytes:
        """Load raw bytes from storage."""
        full_path = self.root / relative_path
        if not full_path.exists():
            raise FileNotFoundError(f"Artifact not found: {relative_path}")
        return full_path.read_bytes()

    def load_json(self, relative_path: str) -> dict:
        """Load a JSON artifact from storage."""
        full_path = self.root / relative_path
        if not full_path.exists():
            raise FileNotFoundError(f"Artifact not found: {relative_path}")
        return json.loads(full_path.read_text(encoding="utf-8"))

    def exists(self, relative_path: str) -> bool:
        """Check if an artifact exists."""
        return (self.root / relative_path).exists()

    def full_path(self, relative_path: str) -> Path:
        """Get the absolute filesystem path for an artifact."""
        return self.root / relative_path

    def iter_names(self, pattern: str = "*", prefix: Optional[str] = None) -> Iterator[str]:
        """Relative paths of stored files under ``prefix`` matching ``pattern``."""
        base = self.root / prefix if prefix else self.root
        if not base.exists():
            return
        for p in sorted(base.glob(pattern)):
            if p.is_file():
                yield str(p.relative_to(self.root))
