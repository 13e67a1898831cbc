"""
Channel worker processes.

Each worker builds its whole object graph once at startup (settings ->
engines -> router -> fetcher -> staging -> coordinator -> client -> adapter)
and only then reports ready to the supervisor. If any of that fails, the
process exits non-zero without reporting ready.
"""

import asyncio
import signal
import sys
from typing import Any, Callable, Optional

import httpx

from gateway.channels.base import ChannelAdapter
from gateway.config import Settings, get_settings
from gateway.engines import initialize_engine, load_engine
from gateway.errors import ConfigurationError
from gateway.ingestion import AttachmentValidator, IngestionCoordinator, TempStorage
from gateway.logging_config import get_logger, setup_logging
from gateway.router import QueryRouter
from gateway.utils.dedup import RecentIds

logger = get_logger("worker")

READY_SIGNAL = "ready"
EXIT_CONFIGURATION_ERROR = 2
EXIT_STARTUP_FAILURE = 1


def _coordinator(settings: Settings, client, storage: TempStorage, content_engine) -> IngestionCoordinator:
    return IngestionCoordinator(
        AttachmentValidator(),
        client.media,
        storage,
        content_engine,
        fetch_timeout=settings.fetch_timeout_seconds,
        ingest_timeout=settings.ingest_timeout_seconds,
        secrets=settings.secret_values(),
    )


def _storage(settings: Settings, platform: str) -> TempStorage:
    storage = TempStorage(platform, root=settings.temp_root, keep_files=settings.keep_temp_files)
    storage.ensure()
    return storage


def build_telegram_worker(settings: Settings, http: httpx.AsyncClient, router: QueryRouter, content_engine):
    from gateway.channels.telegram import TelegramClient, TelegramWorker, build_application, register_adapter

    settings.require_telegram()
    storage = _storage(settings, "telegram")

    application = build_application(settings.telegram_bot_token)
    client = TelegramClient(application.bot, http)
    adapter = ChannelAdapter(
        client,
        router,
        _coordinator(settings, client, storage, content_engine),
        welcome_message=settings.telegram_welcome_message,
        greetings=settings.telegram_greetings,
    )
    register_adapter(application, adapter)
    return TelegramWorker(application)


def build_whatsapp_worker(settings: Settings, http: httpx.AsyncClient, router: QueryRouter, content_engine):
    from gateway.channels.whatsapp import WhatsAppClient
    from gateway.webhook import WebhookWorker, create_webhook_app

    settings.require_whatsapp()
    storage = _storage(settings, "whatsapp")

    client = WhatsAppClient.from_settings(settings, http)
    adapter = ChannelAdapter(
        client,
        router,
        _coordinator(settings, client, storage, content_engine),
        welcome_message=settings.whatsapp_welcome_message,
        greetings=settings.whatsapp_greetings,
        recent_ids=RecentIds(settings.dedup_cache_size),
    )
    app = create_webhook_app(
        adapter,
        verify_token=settings.webhook_verify_token,
        environment=settings.environment,
    )
    return WebhookWorker(app, settings.whatsapp_host, settings.whatsapp_port)


WORKER_BUILDERS = {
    "telegram": build_telegram_worker,
    "whatsapp": build_whatsapp_worker,
}


async def _close(engine: Any) -> None:
    close = getattr(engine, "close", None)
    if close is None:
        return
    try:
        await close()
    except Exception as e:
        logger.warning(f"Engine close failed: {e}")


async def run_worker(channel: str, settings: Settings, on_ready: Callable[[], None] = lambda: None) -> None:
    """Build and serve one channel until SIGINT/SIGTERM."""
    builder = WORKER_BUILDERS.get(channel)
    if builder is None:
        raise ConfigurationError(f"Unknown channel {channel!r}; expected one of {sorted(WORKER_BUILDERS)}")

    qa_engine = load_engine(settings.qa_engine, settings)
    content_engine = load_engine(settings.content_engine, settings)

    try:
        async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds) as http:
            worker = builder(settings, http, QueryRouter(qa_engine, timeout=settings.query_timeout_seconds), content_engine)

            await initialize_engine(qa_engine)
            await initialize_engine(content_engine)
            logger.info(f"[{channel}] Engines initialized")

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, worker.stop)
                except (NotImplementedError, RuntimeError):
                    logger.debug(f"[{channel}] Cannot install handler for {sig.name} here")

            await worker.serve(on_ready)
    finally:
        await _close(qa_engine)
        await _close(content_engine)


def worker_main(channel: str, ready_conn: Optional[Any] = None) -> None:
    """
    Process entry point.

    Sends READY_SIGNAL over ready_conn once serving; exits 2 on a
    configuration error and 1 on any other startup failure.
    """
    settings = get_settings()
    setup_logging(settings.log_level)

    def signal_ready() -> None:
        if ready_conn is not None:
            ready_conn.send(READY_SIGNAL)
            ready_conn.close()

    try:
        asyncio.run(run_worker(channel, settings, signal_ready))
    except ConfigurationError as e:
        logger.error(f"[{channel}] Configuration error: {e}")
        sys.exit(EXIT_CONFIGURATION_ERROR)
    except Exception as e:
        logger.error(f"[{channel}] Worker failed: {e}", exc_info=True)
        sys.exit(EXIT_STARTUP_FAILURE)
