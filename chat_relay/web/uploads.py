"""Transient storage for files attached to buffered chat requests."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    original_name: str
    mime_type: str
    size: int
    stored_name: str
    path: Path


class UploadStore:
    """Append-only directory; uuid-prefixed names so concurrent uploads never collide."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, file: FileStorage) -> UploadedFile:
        original = file.filename or "upload"
        safe = secure_filename(original) or "upload"
        stored_name = f"{uuid.uuid4().hex}-{safe}"
        self.ensure()
        path = self.root / stored_name
        file.save(path)
        uploaded = UploadedFile(
            original_name=original,
            mime_type=file.mimetype or "application/octet-stream",
            size=path.stat().st_size,
            stored_name=stored_name,
            path=path,
        )
        logger.info(
            "upload stored",
            extra={"stored_name": stored_name, "size": uploaded.size, "mime_type": uploaded.mime_type},
        )
        return uploaded
