"""Multi-channel chat gateway: Telegram and WhatsApp in front of QA and content engines."""

__version__ = "0.1.0"
