"""Local attachment storage: writes evidence files and hands back public locators.

The incident service never looks inside a locator; it stores the string as-is.
Only raster image types are accepted, because stored files are served back
from the application's own origin.
"""

import time
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

from ..errors import StorageError, ValidationError
from ..utils.logging import get_logger

logger = get_logger("storage.attachments")

# No svg: it can carry script
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "heic"})


def image_extension(filename: str, content_type: Optional[str] = None) -> str:
    """Return the lowercased extension of an image upload or raise ``ValidationError``.

    When ``content_type`` is given it must be an ``image/*`` type other
    than svg.
    """
    suffix = PurePosixPath(filename or "").suffix.lstrip(".").lower()
    if suffix not in IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Evidence must be an image ({', '.join(sorted(IMAGE_EXTENSIONS))})",
            field="file",
            filename=filename,
        )
    if content_type is not None:
        media_type = content_type.split(";", 1)[0].strip().lower()
        if not media_type.startswith("image/") or media_type.startswith("image/svg"):
            raise ValidationError(
                f"Evidence content type {content_type!r} is not an image",
                field="file",
                filename=filename,
            )
    return suffix


def evidence_path(
    account_id: str,
    filename: str,
    now_ms: Optional[int] = None,
    token: Optional[str] = None,
) -> str:
    """``{account_id}/{epoch_millis}-{token}.{ext}``, keeping the uploaded image's extension.

    ``token`` defaults to eight random hex digits, so uploads landing in
    the same millisecond get distinct paths.
    """
    suffix = image_extension(filename)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    token = token or uuid.uuid4().hex[:8]
    return f"{account_id}/{stamp}-{token}.{suffix}"


class LocalAttachmentStorage:
    """Stores attachment bytes under ``root`` and serves them from ``public_base_url``."""

    def __init__(self, root: str | Path, public_base_url: str, max_bytes: int = 10_000_000):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    def _target(self, path: str) -> Path:
        rel = PurePosixPath(path)
        if not path or rel.is_absolute() or ".." in rel.parts:
            raise ValidationError(f"Invalid attachment path: {path!r}", field="path")
        target = (self.root / rel).resolve()
        if self.root not in target.parents:
            raise ValidationError(f"Invalid attachment path: {path!r}", field="path")
        return target

    def save(self, data: bytes, path: str) -> str:
        """Write ``data`` at ``path`` and return its public locator.

        The path must end in an image extension and must not already exist.
        """
        if not data:
            raise ValidationError("Attachment is empty", field="file")
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"Attachment exceeds {self.max_bytes} bytes", field="file", size=len(data)
            )

        target = self._target(path)
        image_extension(target.name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as fh:
                fh.write(data)
        except FileExistsError as exc:
            logger.warning("attachment_exists", path=path)
            raise StorageError(f"Attachment {path} already exists") from exc
        except OSError as exc:
            logger.error("attachment_write_failed", path=path, error=str(exc))
            raise StorageError(f"Could not store attachment {path}") from exc

        locator = f"{self.public_base_url}/{PurePosixPath(path).as_posix()}"
        logger.info("attachment_stored", path=path, size=len(data))
        return locator
