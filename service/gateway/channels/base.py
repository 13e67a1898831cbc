"""
Channel adapter core shared by every messaging platform.

A platform only supplies a ChannelClient (send_text, media fetcher,
normalize). Routing lives here once:

    greeting     -> configured welcome text
    "pdf: <url>" -> ingestion of a linked document
    other text   -> QueryRouter
    document     -> IngestionCoordinator
    voice/photo  -> capability-not-available reply
    anything else-> unsupported reply

Each handled message ends in exactly one reply send. A failed send is
logged and dropped; there is nowhere else to report it.
"""

import time
from typing import Any, Iterable, Optional, Protocol

from gateway import replies
from gateway.ingestion import IngestionCoordinator, MediaFetcher
from gateway.logging_config import get_logger
from gateway.models import AttachmentRef, Channel, InboundMessage, IngestionOutcome, MessageKind
from gateway.router import QueryRouter
from gateway.utils.dedup import RecentIds

logger = get_logger("channels")

LINK_PREFIX = "pdf:"


class ChannelClient(Protocol):
    """What a platform must provide to plug into ChannelAdapter."""

    name: str
    channel: Channel
    media: MediaFetcher

    async def send_text(self, recipient: str, text: str) -> Any: ...

    def normalize(self, event: Any) -> Optional[InboundMessage]: ...


def format_outcome(outcome: IngestionOutcome) -> str:
    if outcome.rejected:
        return outcome.message
    if outcome.success:
        return replies.ingestion_succeeded(outcome.message)
    return replies.ingestion_failed(outcome.message)


class ChannelAdapter:
    def __init__(
        self,
        client: ChannelClient,
        router: QueryRouter,
        ingestion: IngestionCoordinator,
        *,
        welcome_message: str,
        greetings: Iterable[str],
        recent_ids: Optional[RecentIds] = None,
    ):
        self.client = client
        self.router = router
        self.ingestion = ingestion
        self.welcome_message = welcome_message
        self.greetings = {g.strip().lower() for g in greetings if g.strip()}
        self.recent_ids = recent_ids

    @property
    def name(self) -> str:
        return self.client.name

    def is_greeting(self, text: str) -> bool:
        return text.strip().lower() in self.greetings

    async def dispatch(self, event: Any) -> None:
        """Normalize a platform event and handle it. Never raises."""
        try:
            message = self.client.normalize(event)
        except Exception as e:
            logger.error(f"[{self.name}] Could not normalize event: {e}", exc_info=True)
            return

        if message is None:
            return

        if self.recent_ids is not None and message.message_id:
            if self.recent_ids.seen(message.message_id):
                logger.info(f"[{self.name}] Dropping duplicate delivery of message_id={message.message_id}")
                return

        await self.handle(message)

    async def handle(self, message: InboundMessage) -> None:
        logger.info(f"[{self.name}] Message from {message.sender_id}: kind={message.kind.value}")
        try:
            reply = await self.reply_for(message)
        except Exception as e:
            logger.error(f"[{self.name}] Error handling message from {message.sender_id}: {e}", exc_info=True)
            reply = replies.QUERY_ERROR

        await self.send(message.sender_id, reply)

    async def reply_for(self, message: InboundMessage) -> str:
        if message.kind == MessageKind.TEXT:
            return await self._reply_for_text(message)

        if message.kind == MessageKind.DOCUMENT:
            outcome = await self.ingestion.ingest(
                message.attachment,
                notify=self._notifier(message.sender_id),
            )
            return format_outcome(outcome)

        if message.kind == MessageKind.VOICE:
            return replies.VOICE_NOT_SUPPORTED

        if message.kind == MessageKind.PHOTO:
            return replies.PHOTO_NOT_SUPPORTED

        return replies.UNSUPPORTED_MESSAGE

    async def _reply_for_text(self, message: InboundMessage) -> str:
        text = message.text
        if self.is_greeting(text):
            return self.welcome_message

        stripped = text.strip()
        if stripped.lower().startswith(LINK_PREFIX):
            url = stripped[len(LINK_PREFIX):].strip()
            if not url.lower().startswith(("http://", "https://")):
                return replies.LINK_USAGE

            ref = AttachmentRef(media_handle=url, declared_filename=f"doc_{int(time.time() * 1000)}.pdf")
            outcome = await self.ingestion.ingest(
                ref,
                notify=self._notifier(message.sender_id),
                notice=replies.downloading_link(url),
            )
            return format_outcome(outcome)

        logger.info(f"[{self.name}] Query from {message.sender_id}: {text[:100]}")
        return await self.router.answer(text)

    def _notifier(self, recipient: str):
        async def notify(text: str) -> None:
            await self.send(recipient, text)
        return notify

    async def send(self, recipient: str, text: str) -> bool:
        try:
            await self.client.send_text(recipient, text)
            return True
        except Exception as e:
            logger.error(f"[{self.name}] Failed to send message to {recipient}: {e}")
            return False
