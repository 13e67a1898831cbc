"""
WhatsApp webhook HTTP surface.

FastAPI app with the subscription handshake, event delivery (acknowledged
before processing), a manual send route and status routes, plus the worker
that serves it under uvicorn.
"""

import asyncio
import hmac
import json
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel

from gateway import __version__
from gateway.channels.base import ChannelAdapter
from gateway.logging_config import get_logger

logger = get_logger("whatsapp")


class SendMessageRequest(BaseModel):
    phone: Optional[str] = None
    message: Optional[str] = None


def _token_matches(given: Optional[str], expected: str) -> bool:
    if given is None or not expected:
        return False
    return hmac.compare_digest(given.encode(), expected.encode())


def create_webhook_app(adapter: ChannelAdapter, *, verify_token: str, environment: str = "development") -> FastAPI:
    """
    FastAPI app for the WhatsApp webhook.

    POST /webhook answers 200 before any processing: the platform retries
    deliveries that are not acknowledged quickly.
    """
    app = FastAPI(
        title="ChatMistery WhatsApp Gateway",
        version=__version__,
    )

    # Strong references; the loop only keeps weak ones to running tasks
    background_tasks: set[asyncio.Task] = set()
    app.state.background_tasks = background_tasks

    @app.get("/", response_class=HTMLResponse)
    async def root():
        """Root endpoint."""
        return "<h1>WhatsApp Bot con RAG está funcionando</h1>"

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "channel": adapter.name,
            "environment": environment,
            "version": __version__,
        }

    @app.get("/webhook")
    async def verify_webhook(
        mode: Optional[str] = Query(None, alias="hub.mode"),
        token: Optional[str] = Query(None, alias="hub.verify_token"),
        challenge: Optional[str] = Query(None, alias="hub.challenge"),
    ):
        """Subscription handshake: echo the challenge if the token matches."""
        if mode == "subscribe" and _token_matches(token, verify_token):
            logger.info("Webhook verified successfully")
            return PlainTextResponse(challenge or "", status_code=200)

        logger.error("Webhook verification failed")
        return Response(status_code=403)

    @app.post("/webhook")
    async def receive_webhook(request: Request):
        """
        Webhook endpoint for WhatsApp events.

        No network call happens before the 200; processing runs as a task.
        """
        try:
            payload = await request.json()
        except ValueError:
            logger.warning("Webhook body is not valid JSON, ignoring")
            return PlainTextResponse("OK", status_code=200)

        logger.debug(f"Incoming webhook data: {json.dumps(payload, ensure_ascii=False)[:2000]}")

        task = asyncio.create_task(adapter.dispatch(payload))
        background_tasks.add(task)
        task.add_done_callback(background_tasks.discard)

        return PlainTextResponse("OK", status_code=200)

    @app.post("/send-message")
    async def send_message(body: SendMessageRequest):
        """Manual outbound message, for testing the send path."""
        if not body.phone or not body.message:
            return JSONResponse({"error": "Se requiere phone y message"}, status_code=400)

        try:
            result = await adapter.client.send_text(body.phone, body.message)
        except Exception as e:
            logger.error(f"Manual send failed: {e}")
            return JSONResponse({"error": str(e)}, status_code=500)
        return {"success": True, "result": result}

    return app


class WebhookWorker:
    """Runs the webhook app under uvicorn until stop() is called."""

    def __init__(self, app: FastAPI, host: str, port: int, name: str = "whatsapp"):
        self.app = app
        self.host = host
        self.port = port
        self.name = name
        self._stop = asyncio.Event()

    async def serve(self, on_ready: Callable[[], None]) -> None:
        config = uvicorn.Config(self.app, host=self.host, port=self.port, log_config=None)
        server = uvicorn.Server(config)
        serve_task = asyncio.create_task(server.serve())

        while not server.started:
            if serve_task.done():
                await serve_task
                raise RuntimeError(f"Webhook server failed to start on {self.host}:{self.port}")
            await asyncio.sleep(0.05)

        logger.info(f"WhatsApp server running on port {self.port}")
        on_ready()

        stop_wait = asyncio.create_task(self._stop.wait())
        await asyncio.wait({serve_task, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        stop_wait.cancel()

        server.should_exit = True
        await serve_task
        logger.info("WhatsApp server stopped")

    def stop(self) -> None:
        self._stop.set()
