"""
Free-text questions -> question-answering engine.
"""

import asyncio
from typing import Mapping, Optional

from gateway import replies
from gateway.engines import QueryEngine
from gateway.logging_config import get_logger

logger = get_logger("router")


class QueryRouter:
    """Relays one question to the QA engine. Never raises."""

    def __init__(self, engine: QueryEngine, timeout: Optional[float] = None):
        self.engine = engine
        self.timeout = timeout

    async def answer(self, text: str) -> str:
        try:
            result = await asyncio.wait_for(self.engine.query(text), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"QA engine timed out after {self.timeout}s (text_len={len(text)})")
            return replies.QUERY_ERROR
        except Exception as e:
            logger.error(f"Error processing query: {e}", exc_info=True)
            return replies.QUERY_ERROR

        answer = result.get("answer") if isinstance(result, Mapping) else getattr(result, "answer", None)
        if not answer or not str(answer).strip():
            logger.warning("QA engine returned an empty answer")
            return replies.EMPTY_ANSWER
        return str(answer)
