"""
Tests for the Telegram channel.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from telegram.error import NetworkError

from gateway.channels.base import ChannelAdapter
from gateway.channels.telegram import (
    MAX_MESSAGE_LENGTH,
    TelegramClient,
    TelegramFileResolver,
    TelegramWorker,
    build_application,
    register_adapter,
)
from gateway.errors import FetchError, FetchFailure, TransportError
from gateway.models import AttachmentRef, Channel, MessageKind

from conftest import mock_http, pdf_route

FILE_URL = "https://api.telegram.org/file/bot123:ABC/documents/file_7.pdf"


def make_update(update_id=1, chat_id=777, **fields):
    defaults = {"text": None, "document": None, "voice": None, "audio": None, "photo": ()}
    defaults.update(fields)
    message = SimpleNamespace(chat_id=chat_id, **defaults)
    return SimpleNamespace(update_id=update_id, effective_message=message)


def make_bot():
    bot = MagicMock()
    bot.send_message = AsyncMock(return_value=SimpleNamespace(message_id=5))
    bot.get_file = AsyncMock(return_value=SimpleNamespace(file_path=FILE_URL))
    return bot


class TestNormalize:
    """Telegram Update -> InboundMessage."""

    def setup_method(self):
        http, _ = mock_http(pdf_route)
        self.client = TelegramClient(make_bot(), http)

    def test_text(self):
        message = self.client.normalize(make_update(text="/start"))
        assert message.kind == MessageKind.TEXT
        assert message.text == "/start"
        assert message.sender_id == "777"
        assert message.channel == Channel.POLLING
        assert message.message_id == "1"

    def test_document(self):
        document = SimpleNamespace(file_id="doc-1", file_name="libro.pdf", mime_type="application/pdf")
        message = self.client.normalize(make_update(document=document))
        assert message.kind == MessageKind.DOCUMENT
        assert message.attachment == AttachmentRef("doc-1", "libro.pdf", "application/pdf")

    def test_voice(self):
        voice = SimpleNamespace(file_id="v-1", mime_type="audio/ogg")
        message = self.client.normalize(make_update(voice=voice))
        assert message.kind == MessageKind.VOICE
        assert message.attachment.media_handle == "v-1"

    def test_audio_is_voice(self):
        audio = SimpleNamespace(file_id="a-1", mime_type="audio/mpeg")
        assert self.client.normalize(make_update(audio=audio)).kind == MessageKind.VOICE

    def test_photo_uses_largest_size(self):
        sizes = (SimpleNamespace(file_id="small"), SimpleNamespace(file_id="large"))
        message = self.client.normalize(make_update(photo=sizes))
        assert message.kind == MessageKind.PHOTO
        assert message.attachment.media_handle == "large"

    def test_sticker_unsupported(self):
        message = self.client.normalize(make_update())
        assert message.kind == MessageKind.UNSUPPORTED

    def test_no_message(self):
        assert self.client.normalize(SimpleNamespace(update_id=1, effective_message=None)) is None


class TestSendText:
    """Outbound messages."""

    @pytest.mark.asyncio
    async def test_send(self):
        bot = make_bot()
        http, _ = mock_http(pdf_route)
        client = TelegramClient(bot, http)

        await client.send_text("777", "hola")

        bot.send_message.assert_awaited_once_with(chat_id="777", text="hola")

    @pytest.mark.asyncio
    async def test_long_text_truncated(self):
        bot = make_bot()
        http, _ = mock_http(pdf_route)
        client = TelegramClient(bot, http)

        await client.send_text("777", "x" * 5000)

        sent = bot.send_message.call_args.kwargs["text"]
        assert len(sent) == MAX_MESSAGE_LENGTH
        assert sent.endswith("...")

    @pytest.mark.asyncio
    async def test_telegram_error(self):
        bot = make_bot()
        bot.send_message.side_effect = NetworkError("connection reset")
        http, _ = mock_http(pdf_route)

        with pytest.raises(TransportError):
            await TelegramClient(bot, http).send_text("777", "hola")


class TestFileDownload:
    """file_id -> getFile -> download."""

    @pytest.mark.asyncio
    async def test_fetch_document(self):
        bot = make_bot()
        http, handler = mock_http(pdf_route)
        client = TelegramClient(bot, http)

        media = await client.media.fetch(AttachmentRef("doc-1", "libro.pdf"))

        assert media.data == b"%PDF-1.4 test"
        bot.get_file.assert_awaited_once_with("doc-1")
        assert str(handler.requests[0].url) == FILE_URL

    @pytest.mark.asyncio
    async def test_no_file_path(self):
        bot = make_bot()
        bot.get_file.return_value = SimpleNamespace(file_path=None)

        with pytest.raises(FetchError) as exc_info:
            await TelegramFileResolver(bot).resolve("doc-1")

        assert exc_info.value.reason == FetchFailure.METADATA_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_get_file_error(self):
        bot = make_bot()
        bot.get_file.side_effect = NetworkError("timeout")

        with pytest.raises(FetchError) as exc_info:
            await TelegramFileResolver(bot).resolve("doc-1")

        assert exc_info.value.reason == FetchFailure.DOWNLOAD_FAILED


class TestApplication:
    """python-telegram-bot wiring."""

    def test_register_adapter(self):
        application = build_application("123456:ABC-DEF")
        adapter = MagicMock(spec=ChannelAdapter)

        register_adapter(application, adapter)

        assert len(application.handlers[0]) == 1
        assert len(application.error_handlers) == 1

    @pytest.mark.asyncio
    async def test_worker_lifecycle(self):
        """Ready is reported after polling starts; stop() shuts everything down."""
        updater = SimpleNamespace(start_polling=AsyncMock(), stop=AsyncMock(), running=True)
        application = SimpleNamespace(
            initialize=AsyncMock(),
            start=AsyncMock(),
            stop=AsyncMock(),
            shutdown=AsyncMock(),
            updater=updater,
            running=True,
        )
        worker = TelegramWorker(application)
        ready = asyncio.Event()

        task = asyncio.create_task(worker.serve(ready.set))
        await asyncio.wait_for(ready.wait(), timeout=1.0)
        updater.start_polling.assert_awaited_once()

        worker.stop()
        await asyncio.wait_for(task, timeout=1.0)

        updater.stop.assert_awaited_once()
        application.stop.assert_awaited_once()
        application.shutdown.assert_awaited_once()
