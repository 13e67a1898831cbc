"""
Boundary to the external question-answering and content-extraction engines.

The gateway never implements retrieval or PDF extraction itself; it talks
to whatever object the settings point at through these two protocols.
"""

import importlib
from typing import Any, Mapping, Protocol, runtime_checkable

from gateway.errors import ConfigurationError


@runtime_checkable
class QueryEngine(Protocol):
    async def query(self, text: str) -> Mapping[str, Any]:
        """Return {"answer": str}."""
        ...


@runtime_checkable
class ContentEngine(Protocol):
    async def initialize(self) -> None: ...

    async def ingest_document(self, data: bytes, filename: str) -> Mapping[str, Any]:
        """Return {"success": bool, "message": str}."""
        ...


def load_engine(path: str, settings) -> Any:
    """
    Build an engine from a "package.module:attr" path.

    attr.from_settings(settings) is used when attr provides it, else attr().
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f"Engine path must look like 'module:attr', got {path!r}")

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load engine {path!r}: {e}") from e

    if hasattr(factory, "from_settings"):
        return factory.from_settings(settings)
    return factory()


async def initialize_engine(engine: Any) -> None:
    """Run engine.initialize() when the engine has one."""
    initialize = getattr(engine, "initialize", None)
    if initialize is not None:
        await initialize()
