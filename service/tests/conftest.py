"""
Shared fakes for gateway tests.
"""

from typing import Any, Callable, List, Optional

import httpx
import pytest

from gateway.channels.base import ChannelAdapter
from gateway.ingestion import AttachmentValidator, IngestionCoordinator, MediaFetcher, TempStorage
from gateway.models import Channel, InboundMessage
from gateway.router import QueryRouter


class FakeQueryEngine:
    def __init__(self, answer: str = "42", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.queries: List[str] = []

    async def query(self, text: str):
        self.queries.append(text)
        if self.error:
            raise self.error
        return {"answer": self.answer}


class FakeContentEngine:
    def __init__(self, result: Any = None, error: Optional[Exception] = None):
        self.result = result if result is not None else {"success": True, "message": "12 pages indexed"}
        self.error = error
        self.calls: List[tuple] = []
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def ingest_document(self, data: bytes, filename: str):
        self.calls.append((data, filename))
        if self.error:
            raise self.error
        return self.result


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a routing function."""

    def __init__(self, route: Callable[[httpx.Request], httpx.Response]):
        self.route = route
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.route(request)

    def count(self, host: str) -> int:
        return sum(1 for r in self.requests if r.url.host == host)


class FakeClient:
    """ChannelClient whose normalize() passes InboundMessage through."""

    name = "fake"
    channel = Channel.POLLING

    def __init__(self, media: MediaFetcher, fail_sends: bool = False):
        self.media = media
        self.fail_sends = fail_sends
        self.sent: List[tuple] = []

    async def send_text(self, recipient: str, text: str):
        if self.fail_sends:
            raise RuntimeError("send failed")
        self.sent.append((recipient, text))
        return {"ok": True}

    def normalize(self, event: Any) -> Optional[InboundMessage]:
        return event


def mock_http(route: Callable[[httpx.Request], httpx.Response]):
    handler = RecordingHandler(route)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), handler


def pdf_route(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"%PDF-1.4 test", headers={"content-type": "application/pdf"})


@pytest.fixture
def storage(tmp_path):
    storage = TempStorage("test", root=str(tmp_path))
    storage.ensure()
    return storage


@pytest.fixture
def query_engine():
    return FakeQueryEngine()


@pytest.fixture
def content_engine():
    return FakeContentEngine()


@pytest.fixture
def make_adapter(storage, query_engine, content_engine):
    """Build a ChannelAdapter around FakeClient; returns (adapter, client, http handler)."""

    def build(route=pdf_route, greetings=("hola", "start"), welcome="Bienvenido", **kwargs):
        http, handler = mock_http(route)
        client = FakeClient(MediaFetcher(http), fail_sends=kwargs.pop("fail_sends", False))
        coordinator = IngestionCoordinator(AttachmentValidator(), client.media, storage, content_engine)
        adapter = ChannelAdapter(
            client,
            QueryRouter(query_engine),
            coordinator,
            welcome_message=welcome,
            greetings=greetings,
            **kwargs,
        )
        return adapter, client, handler

    return build
