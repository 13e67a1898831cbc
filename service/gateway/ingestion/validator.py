"""
Attachment type check, run before anything is downloaded.
"""

from dataclasses import dataclass
from typing import Optional

from gateway import replies
from gateway.errors import AttachmentValidationError
from gateway.models import AttachmentRef

PDF_EXTENSION = ".pdf"
PDF_MIME_TYPE = "application/pdf"


@dataclass
class ValidationResult:
    accepted: bool
    message: Optional[str] = None


class AttachmentValidator:
    """
    Accepts a document when the filename extension OR the declared MIME
    type matches. Either one is enough: some platforms mis-set MIME types.
    """

    def __init__(self, extension: str = PDF_EXTENSION, mime_type: str = PDF_MIME_TYPE):
        self.extension = extension.lower()
        self.mime_type = mime_type.lower()

    def filename_matches(self, filename: Optional[str]) -> bool:
        return bool(filename) and filename.strip().lower().endswith(self.extension)

    def mime_type_matches(self, mime_type: Optional[str]) -> bool:
        if not mime_type:
            return False
        # "application/pdf; charset=binary" still counts
        return mime_type.split(";", 1)[0].strip().lower() == self.mime_type

    def validate(self, ref: AttachmentRef) -> ValidationResult:
        if self.filename_matches(ref.declared_filename) or self.mime_type_matches(ref.declared_mime_type):
            return ValidationResult(accepted=True)
        return ValidationResult(accepted=False, message=replies.UNSUPPORTED_FORMAT)

    def ensure_supported(self, ref: AttachmentRef) -> None:
        """Raise AttachmentValidationError carrying the reply text on rejection."""
        verdict = self.validate(ref)
        if not verdict.accepted:
            raise AttachmentValidationError(verdict.message)
