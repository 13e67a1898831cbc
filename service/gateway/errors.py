"""
Error taxonomy for the gateway.

Only ConfigurationError is fatal; everything else is caught at the
component boundary closest to the user and turned into a reply.
"""

from enum import Enum
from typing import Iterable, Optional

MAX_USER_MESSAGE_LENGTH = 200


class GatewayError(Exception):
    """Base class for gateway errors."""


class ConfigurationError(GatewayError):
    """A required credential or setting is missing. Fatal at startup."""


class AttachmentValidationError(GatewayError):
    """An attachment is not a supported document type."""


class EngineError(GatewayError):
    """The question-answering or content engine failed."""


class TransportError(GatewayError):
    """An outbound send to the platform failed."""


class FetchFailure(str, Enum):
    METADATA_UNAVAILABLE = "metadata_unavailable"
    DOWNLOAD_FAILED = "download_failed"
    TIMED_OUT = "timed_out"


class FetchError(GatewayError):
    """
    Media could not be retrieved.

    Carries the upstream status and body for the logs; user_message()
    only exposes the failure class and status code.
    """

    def __init__(
        self,
        reason: FetchFailure,
        detail: str = "",
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.reason = reason
        self.detail = detail
        self.status = status
        self.body = body
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)

    def user_message(self) -> str:
        if self.reason == FetchFailure.METADATA_UNAVAILABLE:
            return "No se pudo recuperar el documento: la plataforma no devolvió una URL de descarga."
        if self.reason == FetchFailure.TIMED_OUT:
            return "No se pudo recuperar el documento: la descarga tardó demasiado."
        if self.status is not None:
            return f"No se pudo recuperar el documento (HTTP {self.status})."
        return "No se pudo recuperar el documento."


def redact(text: str, secrets: Iterable[str] = ()) -> str:
    """Strip credentials from text and trim it to a length safe for a chat reply."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    if len(text) > MAX_USER_MESSAGE_LENGTH:
        text = text[:MAX_USER_MESSAGE_LENGTH - 3] + "..."
    return text
