"""
HTTP clients for engines that run as separate services.
"""

import httpx
from typing import Any, Dict

from gateway.errors import ConfigurationError, EngineError


class HttpQueryEngine:
    """
    Client for a question-answering service.

    POST {base_url}/query {"query": text} -> {"answer": str}
    """

    def __init__(self, base_url: str, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "HttpQueryEngine":
        if not settings.qa_engine_url:
            raise ConfigurationError("Missing required environment variables: QA_ENGINE_URL")
        return cls(settings.qa_engine_url, timeout=settings.query_timeout_seconds)

    async def query(self, text: str) -> Dict[str, Any]:
        response = await self.client.post(f"{self.base_url}/query", json={"query": text})
        if response.is_error:
            raise EngineError(f"QA engine returned HTTP {response.status_code}: {response.text[:200]}")
        data = response.json()
        if not isinstance(data, dict) or "answer" not in data:
            raise EngineError("QA engine response has no 'answer' field")
        return data

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()


class HttpContentEngine:
    """
    Client for a document ingestion service.

    GET  {base_url}/health                       -> 2xx once the store is ready
    POST {base_url}/documents (multipart "file") -> {"success": bool, "message": str}
    """

    def __init__(self, base_url: str, timeout: float = 300.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "HttpContentEngine":
        if not settings.content_engine_url:
            raise ConfigurationError("Missing required environment variables: CONTENT_ENGINE_URL")
        return cls(settings.content_engine_url, timeout=settings.ingest_timeout_seconds)

    async def initialize(self) -> None:
        response = await self.client.get(f"{self.base_url}/health")
        if response.is_error:
            raise EngineError(f"Content engine not ready (HTTP {response.status_code})")

    async def ingest_document(self, data: bytes, filename: str) -> Dict[str, Any]:
        response = await self.client.post(
            f"{self.base_url}/documents",
            files={"file": (filename, data, "application/pdf")},
        )
        if response.is_error:
            raise EngineError(f"Content engine returned HTTP {response.status_code}: {response.text[:200]}")
        return response.json()

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
