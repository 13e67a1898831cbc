"""
Tests for engine loading and the bundled engine clients.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from gateway.config import Settings
from gateway.engines import ContentEngine, QueryEngine, initialize_engine, load_engine
from gateway.engines.http import HttpContentEngine, HttpQueryEngine
from gateway.engines.openai_qa import OpenAIQueryEngine
from gateway.errors import ConfigurationError, EngineError

from conftest import FakeContentEngine, FakeQueryEngine


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestLoadEngine:
    """Engines are picked by 'module:attr' path."""

    def test_from_settings_factory(self):
        engine = load_engine("gateway.engines.http:HttpQueryEngine", make_settings(qa_engine_url="http://qa:8000/"))
        assert isinstance(engine, HttpQueryEngine)
        assert engine.base_url == "http://qa:8000"

    def test_plain_factory(self):
        """Classes without from_settings are called with no arguments."""
        engine = load_engine("conftest:FakeQueryEngine", make_settings())
        assert isinstance(engine, FakeQueryEngine)
        assert isinstance(engine, QueryEngine)

    def test_missing_url(self):
        with pytest.raises(ConfigurationError, match="QA_ENGINE_URL"):
            load_engine("gateway.engines.http:HttpQueryEngine", make_settings(qa_engine_url=""))

    def test_bad_path_format(self):
        with pytest.raises(ConfigurationError):
            load_engine("gateway.engines.http.HttpQueryEngine", make_settings())

    def test_unknown_module(self):
        with pytest.raises(ConfigurationError):
            load_engine("gateway.nope:Engine", make_settings())

    def test_unknown_attribute(self):
        with pytest.raises(ConfigurationError):
            load_engine("gateway.engines.http:Nope", make_settings())

    @pytest.mark.asyncio
    async def test_initialize_when_available(self):
        engine = FakeContentEngine()
        assert isinstance(engine, ContentEngine)

        await initialize_engine(engine)

        assert engine.initialized is True

    @pytest.mark.asyncio
    async def test_initialize_optional(self):
        """Engines without initialize() are left alone."""
        await initialize_engine(FakeQueryEngine())


def with_transport(engine, handler):
    engine.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return engine


class TestHttpQueryEngine:
    """POST /query client."""

    @pytest.mark.asyncio
    async def test_query(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"answer": "respuesta"})

        engine = with_transport(HttpQueryEngine("http://qa"), handler)

        result = await engine.query("pregunta")

        assert result == {"answer": "respuesta"}
        assert str(seen[0].url) == "http://qa/query"
        assert json.loads(seen[0].content) == {"query": "pregunta"}

    @pytest.mark.asyncio
    async def test_error_status(self):
        engine = with_transport(HttpQueryEngine("http://qa"), lambda request: httpx.Response(503, text="down"))

        with pytest.raises(EngineError):
            await engine.query("pregunta")

    @pytest.mark.asyncio
    async def test_missing_answer(self):
        engine = with_transport(HttpQueryEngine("http://qa"), lambda request: httpx.Response(200, json={"text": "x"}))

        with pytest.raises(EngineError):
            await engine.query("pregunta")


class TestHttpContentEngine:
    """Multipart upload client."""

    @pytest.mark.asyncio
    async def test_ingest_document(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "message": "3 pages indexed"})

        engine = with_transport(HttpContentEngine("http://content"), handler)

        result = await engine.ingest_document(b"%PDF", "report.pdf")

        assert result["success"] is True
        assert seen[0].url.path == "/documents"
        assert b'filename="report.pdf"' in seen[0].content

    @pytest.mark.asyncio
    async def test_initialize_checks_health(self):
        engine = with_transport(HttpContentEngine("http://content"), lambda request: httpx.Response(500))

        with pytest.raises(EngineError):
            await engine.initialize()


class TestOpenAIQueryEngine:
    """Chat completion backed answers."""

    def test_requires_key(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            OpenAIQueryEngine.from_settings(make_settings(openai_api_key=""))

    @pytest.mark.asyncio
    async def test_query(self):
        engine = OpenAIQueryEngine(api_key="sk-test")
        completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="  Respuesta  "))])
        engine.client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=completion)))
        )

        result = await engine.query("¿Quién escribió el libro tibetano?")

        assert result == {"answer": "Respuesta"}
        kwargs = engine.client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][-1] == {"role": "user", "content": "¿Quién escribió el libro tibetano?"}
