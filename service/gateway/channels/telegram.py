"""
Telegram channel.

Uses python-telegram-bot in polling mode; every update goes through the
shared ChannelAdapter.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx
from telegram import Bot, Update
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from gateway.channels.base import ChannelAdapter
from gateway.errors import FetchError, FetchFailure, TransportError
from gateway.ingestion import MediaFetcher
from gateway.logging_config import get_logger
from gateway.models import AttachmentRef, Channel, InboundMessage, MessageKind

logger = get_logger("telegram")

MAX_MESSAGE_LENGTH = 4096


class TelegramFileResolver:
    """file_id -> download URL via getFile. The URL embeds the bot token."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def resolve(self, handle: str) -> str:
        try:
            file = await self.bot.get_file(handle)
        except TelegramError as e:
            raise FetchError(FetchFailure.DOWNLOAD_FAILED, f"getFile failed: {e}") from e

        if not file.file_path:
            raise FetchError(FetchFailure.METADATA_UNAVAILABLE, f"getFile returned no path for {handle}")
        return file.file_path


class TelegramClient:
    name = "telegram"
    channel = Channel.POLLING

    def __init__(self, bot: Bot, http: httpx.AsyncClient):
        self.bot = bot
        self.media = MediaFetcher(http, TelegramFileResolver(bot))

    async def send_text(self, recipient: str, text: str) -> Any:
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[:MAX_MESSAGE_LENGTH - 3] + "..."
        try:
            return await self.bot.send_message(chat_id=recipient, text=text)
        except TelegramError as e:
            raise TransportError(f"Telegram sendMessage failed: {e}") from e

    def normalize(self, update: Update) -> Optional[InboundMessage]:
        message = update.effective_message
        if message is None:
            return None

        common = {
            "channel": self.channel,
            "sender_id": str(message.chat_id),
            "message_id": str(update.update_id),
        }

        if message.text is not None:
            return InboundMessage(kind=MessageKind.TEXT, text=message.text, **common)

        if message.document:
            document = message.document
            ref = AttachmentRef(
                media_handle=document.file_id,
                declared_filename=document.file_name,
                declared_mime_type=document.mime_type,
            )
            return InboundMessage(kind=MessageKind.DOCUMENT, attachment=ref, **common)

        # Voice notes and audio files are the same capability
        audio = message.voice or message.audio
        if audio:
            ref = AttachmentRef(media_handle=audio.file_id, declared_mime_type=audio.mime_type)
            return InboundMessage(kind=MessageKind.VOICE, attachment=ref, **common)

        if message.photo:
            # Largest size is last
            ref = AttachmentRef(media_handle=message.photo[-1].file_id)
            return InboundMessage(kind=MessageKind.PHOTO, attachment=ref, **common)

        return InboundMessage(kind=MessageKind.UNSUPPORTED, **common)


def build_application(token: str) -> Application:
    """Polling application; updates are handled concurrently."""
    return (
        Application.builder()
        .token(token)
        .concurrent_updates(True)
        .build()
    )


def register_adapter(application: Application, adapter: ChannelAdapter) -> None:
    async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await adapter.dispatch(update)

    async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error(f"Telegram update failed: {context.error}", exc_info=context.error)

    application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, handle_message))
    application.add_error_handler(handle_error)


class TelegramWorker:
    """Polls Telegram until stop() is called."""

    name = "telegram"

    def __init__(self, application: Application):
        self.application = application
        self._stop = asyncio.Event()

    async def serve(self, on_ready: Callable[[], None]) -> None:
        app = self.application
        await app.initialize()
        try:
            await app.start()
            await app.updater.start_polling()
            logger.info("Telegram bot started (polling)")
            on_ready()

            await self._stop.wait()
        finally:
            if app.updater.running:
                await app.updater.stop()
            if app.running:
                await app.stop()
            await app.shutdown()
            logger.info("Telegram bot stopped")

    def stop(self) -> None:
        self._stop.set()
