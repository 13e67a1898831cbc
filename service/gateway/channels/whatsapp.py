"""
WhatsApp Cloud API client.

Sends text through the Graph API, downloads media with the two-step
handle -> signed URL protocol, and normalizes webhook payloads.
"""

from typing import Any, Dict, Optional

import httpx

from gateway.errors import TransportError
from gateway.ingestion import GraphMediaResolver, MediaFetcher
from gateway.logging_config import get_logger
from gateway.models import AttachmentRef, Channel, InboundMessage, MessageKind

logger = get_logger("whatsapp")

VOICE_TYPES = {"audio", "voice"}
PHOTO_TYPES = {"image"}


def extract_first_message(payload: Any) -> Optional[Dict[str, Any]]:
    """
    entry[0].changes[0].value.messages[0], or None anywhere along the way.

    Status callbacks (delivered/read) have no "messages" list.
    """
    try:
        messages = payload["entry"][0]["changes"][0]["value"].get("messages")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if not messages or not isinstance(messages, list):
        return None
    first = messages[0]
    return first if isinstance(first, dict) else None


class WhatsAppClient:
    name = "whatsapp"
    channel = Channel.WEBHOOK

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_token: str,
        phone_number_id: str,
        api_base: str = "https://graph.facebook.com",
        api_version: str = "v20.0",
        media_user_agent: str = "WhatsApp/2.19.81 A",
    ):
        graph_url = f"{api_base.rstrip('/')}/{api_version}"
        self.http = http
        self.api_url = f"{graph_url}/{phone_number_id}"
        self.headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }
        # The media CDN rejects downloads without a WhatsApp user-agent
        self.media = MediaFetcher(
            http,
            GraphMediaResolver(http, graph_url, api_token),
            bearer_token=api_token,
            download_headers={"User-Agent": media_user_agent},
        )

    @classmethod
    def from_settings(cls, settings, http: httpx.AsyncClient) -> "WhatsAppClient":
        return cls(
            http,
            api_token=settings.whatsapp_api_token,
            phone_number_id=settings.whatsapp_cloud_number_id,
            api_base=settings.graph_api_base,
            api_version=settings.graph_api_version,
            media_user_agent=settings.whatsapp_media_user_agent,
        )

    async def send_text(self, recipient: str, text: str) -> Dict[str, Any]:
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient,
            "type": "text",
            "text": {
                "preview_url": False,
                "body": text,
            },
        }

        try:
            response = await self.http.post(f"{self.api_url}/messages", json=payload, headers=self.headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Error sending message: {type(e).__name__}") from e

        if response.is_error:
            raise TransportError(f"Error sending message: HTTP {response.status_code} - {response.text[:300]}")

        logger.info(f"Message sent to {recipient}")
        return response.json()

    def normalize(self, payload: Any) -> Optional[InboundMessage]:
        raw = extract_first_message(payload)
        if raw is None:
            logger.info("No messages to process")
            return None

        sender = raw.get("from")
        if not sender:
            logger.info("Sender phone number not found")
            return None

        msg_type = raw.get("type")
        common = {
            "channel": self.channel,
            "sender_id": str(sender),
            "message_id": raw.get("id"),
        }

        if msg_type == "text":
            body = (raw.get("text") or {}).get("body")
            if not body:
                logger.info(f"Text message from {sender} has no body")
                return None
            return InboundMessage(kind=MessageKind.TEXT, text=body, **common)

        if msg_type == "document":
            document = raw.get("document") or {}
            handle = document.get("id") or document.get("link")
            if not handle:
                logger.warning(f"Document from {sender} has no media id")
                return InboundMessage(kind=MessageKind.UNSUPPORTED, **common)
            ref = AttachmentRef(
                media_handle=handle,
                declared_filename=document.get("filename"),
                declared_mime_type=document.get("mime_type"),
            )
            return InboundMessage(kind=MessageKind.DOCUMENT, attachment=ref, **common)

        if msg_type in VOICE_TYPES or msg_type in PHOTO_TYPES:
            media = raw.get(msg_type) or {}
            ref = AttachmentRef(media_handle=media.get("id", ""), declared_mime_type=media.get("mime_type"))
            kind = MessageKind.VOICE if msg_type in VOICE_TYPES else MessageKind.PHOTO
            return InboundMessage(kind=kind, attachment=ref, **common)

        logger.info(f"Unsupported message type: {msg_type}")
        return InboundMessage(kind=MessageKind.UNSUPPORTED, **common)
