"""Evidence attachment storage."""

from .attachments import IMAGE_EXTENSIONS, LocalAttachmentStorage, evidence_path, image_extension

__all__ = ["IMAGE_EXTENSIONS", "LocalAttachmentStorage", "evidence_path", "image_extension"]
