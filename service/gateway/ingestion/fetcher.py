"""
Media retrieval.

Two strategies:
- direct URL: one GET with a browser user-agent; content-type is advisory only
- platform handle: resolve the handle to a short-lived signed URL, then GET it
  with the platform credential (and any extra header its CDN insists on)

Single attempt per call. Callers decide what to tell the user.
"""

from typing import Optional, Protocol
from urllib.parse import urlparse

import httpx

from gateway.errors import FetchError, FetchFailure
from gateway.ingestion.validator import PDF_MIME_TYPE
from gateway.logging_config import get_logger
from gateway.models import AttachmentRef, FetchedMedia

logger = get_logger("media")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
MAX_LOGGED_BODY = 500


class MediaResolver(Protocol):
    """Turns a platform media handle into a downloadable URL."""

    async def resolve(self, handle: str) -> str: ...


def _host(url: str) -> str:
    # Signed URLs and bot file URLs embed credentials; only the host is logged
    return urlparse(url).netloc or "<invalid url>"


class GraphMediaResolver:
    """
    WhatsApp Cloud API metadata lookup.

    GET {graph}/{version}/{media_id} with the bearer token returns
    {"url": ..., "mime_type": ..., ...}; the url is valid for a few minutes.
    """

    def __init__(self, http: httpx.AsyncClient, api_base: str, access_token: str):
        self.http = http
        self.api_base = api_base.rstrip("/")
        self.access_token = access_token

    async def resolve(self, handle: str) -> str:
        metadata_url = f"{self.api_base}/{handle}"
        logger.info(f"Resolving media handle {handle}")

        try:
            response = await self.http.get(
                metadata_url,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        except httpx.TimeoutException as e:
            raise FetchError(FetchFailure.TIMED_OUT, f"metadata lookup timed out for {handle}") from e
        except httpx.HTTPError as e:
            raise FetchError(FetchFailure.DOWNLOAD_FAILED, f"metadata lookup failed: {type(e).__name__}") from e

        if response.is_error:
            raise FetchError(
                FetchFailure.DOWNLOAD_FAILED,
                f"metadata lookup for {handle} returned HTTP {response.status_code}",
                status=response.status_code,
                body=response.text[:MAX_LOGGED_BODY],
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise FetchError(
                FetchFailure.METADATA_UNAVAILABLE,
                f"metadata for {handle} has no download url",
                status=response.status_code,
                body=response.text[:MAX_LOGGED_BODY],
            )

        logger.info(f"Media URL obtained for {handle} (host={_host(url)})")
        return url


class MediaFetcher:
    """Downloads attachment bytes for one platform."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        resolver: Optional[MediaResolver] = None,
        *,
        bearer_token: Optional[str] = None,
        download_headers: Optional[dict[str, str]] = None,
        expected_content_type: str = PDF_MIME_TYPE,
    ):
        self.http = http
        self.resolver = resolver
        self.bearer_token = bearer_token
        self.download_headers = download_headers or {}
        self.expected_content_type = expected_content_type

    async def fetch(self, ref: AttachmentRef) -> FetchedMedia:
        if ref.is_url:
            return await self.fetch_url(ref.media_handle)
        return await self.fetch_handle(ref.media_handle)

    async def fetch_url(self, url: str) -> FetchedMedia:
        """Fetch a document from a public URL."""
        logger.info(f"Downloading document from URL (host={_host(url)})")
        response = await self._get(url, {"User-Agent": BROWSER_USER_AGENT})

        content_type = response.headers.get("content-type")
        if not content_type or self.expected_content_type not in content_type.lower():
            # Some hosts misreport content-type; keep the body anyway
            logger.warning(f"Downloaded content is not {self.expected_content_type}. Content-Type: {content_type}")

        return FetchedMedia(data=response.content, content_type=content_type)

    async def fetch_handle(self, handle: str) -> FetchedMedia:
        """Resolve a platform media handle, then download it."""
        if self.resolver is None:
            raise FetchError(FetchFailure.METADATA_UNAVAILABLE, "no media resolver configured for this channel")

        url = await self.resolver.resolve(handle)

        headers = dict(self.download_headers)
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        response = await self._get(url, headers)
        media = FetchedMedia(data=response.content, content_type=response.headers.get("content-type"))
        logger.info(f"Media downloaded: {media.byte_length} bytes")
        return media

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            response = await self.http.get(url, headers=headers, follow_redirects=True)
        except httpx.TimeoutException as e:
            raise FetchError(FetchFailure.TIMED_OUT, f"download from {_host(url)} timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(FetchFailure.DOWNLOAD_FAILED, f"download from {_host(url)} failed: {type(e).__name__}") from e

        if response.is_error:
            body = response.text[:MAX_LOGGED_BODY]
            logger.error(f"Download from {_host(url)} failed: status={response.status_code}, body={body}")
            raise FetchError(
                FetchFailure.DOWNLOAD_FAILED,
                f"download from {_host(url)} returned HTTP {response.status_code}",
                status=response.status_code,
                body=body,
            )
        return response
