"""Upload collaborator: stores permit documents on local disk.

The rest of the app only sees the resulting reference (a URL) and original
filename. Files are PDF/DOC/DOCX up to the configured size."""
import enum
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

from app.config import get_settings

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class UploadErrorKind(str, enum.Enum):
    too_large = "too_large"
    bad_type = "bad_type"
    storage_failed = "storage_failed"


@dataclass(frozen=True)
class UploadResult:
    reference: str
    filename: str


@dataclass(frozen=True)
class UploadError:
    kind: UploadErrorKind
    message: str


def _safe_name(filename: str) -> str:
    name = Path(filename or "").name
    return _UNSAFE.sub("_", name).strip("._") or "document"


class LocalUploadStore:
    def __init__(
        self,
        base_dir: str,
        base_url: str,
        max_bytes: int,
        allowed_extensions: set[str],
    ):
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_extensions = {e.lower() for e in allowed_extensions}

    def _get_path(self, key: str) -> Path:
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def upload(self, filename: str, stream: BinaryIO | bytes) -> UploadResult | UploadError:
        ext = Path(filename or "").suffix.lower()
        if ext not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            return UploadError(UploadErrorKind.bad_type, f"Unsupported file type '{ext or '?'}'. Allowed: {allowed}")

        if isinstance(stream, (bytes, bytearray)):
            data = bytes(stream)
        else:
            # One byte past the limit is enough to know it is too large
            data = stream.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            mb = self.max_bytes / (1024 * 1024)
            return UploadError(UploadErrorKind.too_large, f"File exceeds the {mb:g} MB limit")

        key = f"move-permits/{uuid.uuid4().hex}/{_safe_name(filename)}"
        path = self._get_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Upload storage failed for %s: %s", key, e)
            return UploadError(UploadErrorKind.storage_failed, "Could not store the uploaded file")

        return UploadResult(reference=f"{self.base_url}/{quote(key)}", filename=Path(filename).name)


def get_upload_store() -> LocalUploadStore:
    settings = get_settings()
    return LocalUploadStore(
        base_dir=settings.upload_dir,
        base_url=settings.upload_base_url,
        max_bytes=settings.upload_max_bytes,
        allowed_extensions=settings.allowed_upload_extensions,
    )
