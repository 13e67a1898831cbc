"""
Question answering through a single OpenAI chat completion.

Useful when no retrieval service is deployed; answers come from the model
alone, so the system prompt keeps it on the bot's topics.
"""

from openai import AsyncOpenAI

from gateway.errors import ConfigurationError

SYSTEM_PROMPT = """Eres ChatMistery Bot, un asistente que responde preguntas sobre libros de
espiritualidad, misterio y religión. Responde en el idioma del usuario, de forma breve y clara.
Si no conoces la respuesta, dilo."""


class OpenAIQueryEngine:
    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 120.0):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "OpenAIQueryEngine":
        if not settings.openai_api_key:
            raise ConfigurationError("Missing required environment variables: OPENAI_API_KEY")
        return cls(settings.openai_api_key, settings.openai_model, timeout=settings.query_timeout_seconds)

    async def query(self, text: str) -> dict:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            temperature=0.3,
        )
        answer = response.choices[0].message.content or ""
        return {"answer": answer.strip()}
