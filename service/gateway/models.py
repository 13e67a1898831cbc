"""
Canonical message and ingestion types shared by all channels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Channel(str, Enum):
    POLLING = "polling"
    WEBHOOK = "webhook"


class MessageKind(str, Enum):
    TEXT = "text"
    DOCUMENT = "document"
    VOICE = "voice"
    PHOTO = "photo"
    UNSUPPORTED = "unsupported"


# Kinds whose content travels as an AttachmentRef
MEDIA_KINDS = {MessageKind.DOCUMENT, MessageKind.VOICE, MessageKind.PHOTO}


@dataclass(frozen=True)
class AttachmentRef:
    """A platform media handle or a direct URL, plus what the sender declared."""
    media_handle: str
    declared_filename: Optional[str] = None
    declared_mime_type: Optional[str] = None

    @property
    def is_url(self) -> bool:
        return self.media_handle.lower().startswith(("http://", "https://"))


@dataclass(frozen=True)
class InboundMessage:
    """
    Normalized inbound event.

    TEXT carries only `text`; DOCUMENT, VOICE and PHOTO carry only
    `attachment`; UNSUPPORTED carries neither.
    """
    channel: Channel
    sender_id: str
    kind: MessageKind
    text: Optional[str] = None
    attachment: Optional[AttachmentRef] = None
    message_id: Optional[str] = None  # platform event id, when the platform sends one

    def __post_init__(self):
        if not self.sender_id:
            raise ValueError("sender_id is required")
        if self.kind == MessageKind.TEXT:
            if self.text is None or self.attachment is not None:
                raise ValueError("text messages carry text and no attachment")
        elif self.kind in MEDIA_KINDS:
            if self.attachment is None or self.text is not None:
                raise ValueError(f"{self.kind.value} messages carry an attachment and no text")
        elif self.text is not None or self.attachment is not None:
            raise ValueError("unsupported messages carry no content")


@dataclass
class FetchedMedia:
    """Raw bytes of one downloaded attachment."""
    data: bytes
    content_type: Optional[str] = None

    @property
    def byte_length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class IngestionOutcome:
    """
    Result of one ingestion attempt.

    `rejected` marks a format rejection (nothing was fetched); its message
    is already the full reply.
    """
    success: bool
    message: str
    rejected: bool = False

    def __post_init__(self):
        if not self.message or not self.message.strip():
            raise ValueError("IngestionOutcome.message must not be empty")


class WorkerState(str, Enum):
    STARTING = "starting"
    READY = "ready"
    RUNNING = "running"
    ERRORED = "errored"
    STOPPED = "stopped"


TERMINAL_WORKER_STATES = {WorkerState.ERRORED, WorkerState.STOPPED}
