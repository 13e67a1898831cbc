from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

from gateway.errors import ConfigurationError


TELEGRAM_WELCOME = (
    "¡Bienvenido a ChatMistery Bot! Por el momento la información que tengo es sobre libros como: "
    "'El libro tibetano de la vida y de la muerte (Sogyal Rimpoche)', "
    "'Illuminati: los secretos de la secta más temida' y 'Todos los evangelios - AA VV'. "
    "¡Pregúntame lo que quieras!"
)

WHATSAPP_WELCOME = (
    "¡Bienvenido a ChatMistery Bot en WhatsApp! Por el momento la información que tengo es sobre libros como: "
    "'El libro tibetano de la vida y de la muerte (Sogyal Rimpoche)', "
    "'Illuminati: los secretos de la secta más temida' y 'Todos los evangelios - AA VV'. "
    "¡Pregúntame lo que quieras!\n\n"
    "También puedes compartir enlaces a PDFs usando el formato: \"pdf: URL_DEL_PDF\""
)


class Settings(BaseSettings):
    # Telegram (polling)
    telegram_bot_token: str = ""
    telegram_greetings: list[str] = ["/start"]
    telegram_welcome_message: str = TELEGRAM_WELCOME

    # WhatsApp Cloud API (webhook)
    whatsapp_api_token: str = ""
    whatsapp_cloud_number_id: str = ""
    webhook_verify_token: str = ""
    whatsapp_host: str = "0.0.0.0"
    whatsapp_port: int = 5000
    graph_api_base: str = "https://graph.facebook.com"
    graph_api_version: str = "v20.0"
    whatsapp_greetings: list[str] = ["hola", "start"]
    whatsapp_welcome_message: str = WHATSAPP_WELCOME
    whatsapp_media_user_agent: str = "WhatsApp/2.19.81 A"
    dedup_cache_size: int = 1024  # 0 disables duplicate suppression

    # External engines ("module:attr" factories)
    qa_engine: str = "gateway.engines.http:HttpQueryEngine"
    content_engine: str = "gateway.engines.http:HttpContentEngine"
    qa_engine_url: str = ""
    content_engine_url: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Deadlines for downstream calls (seconds)
    fetch_timeout_seconds: float = 60.0
    query_timeout_seconds: float = 120.0
    ingest_timeout_seconds: float = 300.0

    # Staging of downloaded documents
    temp_root: Optional[str] = None  # defaults to the system temp dir
    keep_temp_files: bool = False

    # Supervision
    channels: list[str] = ["telegram", "whatsapp"]
    worker_start_timeout_seconds: Optional[float] = None

    # Environment
    log_level: str = "INFO"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def require_telegram(self) -> None:
        """Fail fast when the polling channel cannot authenticate."""
        _require(self, ["telegram_bot_token"])

    def require_whatsapp(self) -> None:
        """Fail fast when the webhook channel is missing credentials."""
        _require(self, ["whatsapp_api_token", "whatsapp_cloud_number_id", "webhook_verify_token"])

    def secret_values(self) -> list[str]:
        """Configured credentials, for scrubbing user-visible text."""
        candidates = [
            self.telegram_bot_token,
            self.whatsapp_api_token,
            self.webhook_verify_token,
            self.openai_api_key,
        ]
        return [value for value in candidates if value]


def _require(settings: Settings, fields: list[str]) -> None:
    missing = [name.upper() for name in fields if not getattr(settings, name)]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
