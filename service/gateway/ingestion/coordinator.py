"""
Document ingestion pipeline.

validate -> notify -> fetch -> stage -> hand off to the content engine.

Every step can end the attempt early; whatever happens, ingest() returns an
IngestionOutcome whose message can be shown to the user as-is.
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

from gateway import replies
from gateway.engines import ContentEngine
from gateway.errors import AttachmentValidationError, FetchError, FetchFailure, redact
from gateway.ingestion.fetcher import MediaFetcher
from gateway.ingestion.staging import TempStorage
from gateway.ingestion.validator import AttachmentValidator
from gateway.logging_config import get_logger
from gateway.models import AttachmentRef, IngestionOutcome

logger = get_logger("ingestion")

Notifier = Callable[[str], Awaitable[Any]]

DEFAULT_SUCCESS_SUMMARY = "Documento indexado."


class IngestionCoordinator:
    def __init__(
        self,
        validator: AttachmentValidator,
        fetcher: MediaFetcher,
        storage: TempStorage,
        content_engine: ContentEngine,
        *,
        fetch_timeout: Optional[float] = None,
        ingest_timeout: Optional[float] = None,
        secrets: Iterable[str] = (),
    ):
        self.validator = validator
        self.fetcher = fetcher
        self.storage = storage
        self.content_engine = content_engine
        self.fetch_timeout = fetch_timeout
        self.ingest_timeout = ingest_timeout
        self.secrets = list(secrets)

    async def ingest(
        self,
        ref: AttachmentRef,
        notify: Optional[Notifier] = None,
        notice: Optional[str] = None,
    ) -> IngestionOutcome:
        # 1. Format check before any network cost
        try:
            self.validator.ensure_supported(ref)
        except AttachmentValidationError as e:
            logger.info(f"Rejected attachment filename={ref.declared_filename!r}, mime={ref.declared_mime_type!r}")
            return IngestionOutcome(success=False, message=str(e), rejected=True)

        filename = ref.declared_filename or "documento.pdf"

        # 2. Best-effort progress notice
        if notify is not None:
            try:
                await notify(notice or replies.processing_started(filename))
            except Exception as e:
                logger.warning(f"Progress notice failed (non-critical): {e}")

        try:
            # 3. Fetch
            try:
                media = await asyncio.wait_for(self.fetcher.fetch(ref), timeout=self.fetch_timeout)
            except asyncio.TimeoutError:
                raise FetchError(FetchFailure.TIMED_OUT, f"fetch exceeded {self.fetch_timeout}s")

            if not media.data:
                return IngestionOutcome(success=False, message="El documento descargado está vacío.")

            # 4. Stage, 5. hand off
            async with self.storage.staged(media.data, filename) as path:
                logger.info(f"Ingesting {filename} ({media.byte_length} bytes, staged at {path.name})")
                result = await asyncio.wait_for(
                    self.content_engine.ingest_document(media.data, filename),
                    timeout=self.ingest_timeout,
                )

            return self._outcome_from_engine(result)

        except FetchError as e:
            logger.error(f"Fetch failed for {filename}: {e} (status={e.status}, body={e.body})")
            return IngestionOutcome(success=False, message=e.user_message())
        except asyncio.TimeoutError:
            logger.error(f"Content engine timed out after {self.ingest_timeout}s for {filename}")
            return IngestionOutcome(success=False, message="El procesamiento del documento tardó demasiado.")
        except Exception as e:
            logger.error(f"Ingestion failed for {filename}: {e}", exc_info=True)
            message = redact(str(e), self.secrets) or type(e).__name__
            return IngestionOutcome(success=False, message=message)

    @staticmethod
    def _outcome_from_engine(result: Any) -> IngestionOutcome:
        if isinstance(result, Mapping):
            success = bool(result.get("success"))
            message = str(result.get("message") or "")
        else:
            success = bool(getattr(result, "success", False))
            message = str(getattr(result, "message", "") or "")

        if not message.strip():
            message = DEFAULT_SUCCESS_SUMMARY if success else "El motor de contenido no pudo procesar el documento."
        return IngestionOutcome(success=success, message=message)
