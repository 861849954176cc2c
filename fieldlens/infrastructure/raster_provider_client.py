"""
Infrastructure layer: NDVI raster provider client with retry logic.
"""
from typing import Optional
import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from fieldlens.config import settings
from fieldlens.infrastructure.api_constants import APIConstants, RasterProviderEndpoints

logger = logging.getLogger(__name__)


class RasterProviderError(Exception):
    """Non-retryable failure while talking to the raster provider."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RasterProviderClient:
    """
    Client for the NDVI raster provider.
    Implements retry logic with exponential backoff.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        palette: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the client; unset arguments fall back to settings."""
        self.base_url = base_url or settings.raster_provider_base_url
        self.api_key = api_key if api_key is not None else settings.raster_provider_api_key
        self.palette = palette or settings.raster_palette
        headers = {"accept": APIConstants.ACCEPT_IMAGE}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or settings.raster_request_timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "RasterProviderClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def field_image_url(self, field_id: int, palette: Optional[str] = None) -> str:
        """
        Build the absolute NDVI image URL for a field.

        Args:
            field_id: Field ID
            palette: Color palette requested from the provider

        Returns:
            Absolute URL including the palette query parameter
        """
        path = RasterProviderEndpoints.get_ndvi_image(field_id)
        url = httpx.URL(self.base_url.rstrip("/") + path)
        return str(url.copy_merge_params({"palette": palette or self.palette}))

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
        reraise=True,
    )
    async def _get_bytes(self, url: str) -> httpx.Response:
        """
        GET a URL with retry logic.

        Server errors (5xx) and transport errors are retried; client errors
        are raised immediately as RasterProviderError.
        """
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= APIConstants.RETRYABLE_STATUS:
                logger.warning(f"Raster provider returned {e.response.status_code}, retrying")
                raise
            raise RasterProviderError(
                f"Raster request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )

    async def fetch_image(self, url: str) -> bytes:
        """
        Fetch raw image bytes.

        Args:
            url: Absolute or base-relative image URL

        Returns:
            Response body

        Raises:
            RasterProviderError: If the request fails after retries or the
                response does not declare an image content type
        """
        try:
            response = await self._get_bytes(url)
        except httpx.HTTPStatusError as e:
            raise RasterProviderError(
                f"Raster request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise RasterProviderError(f"Raster request error: {str(e)}")

        content_type = response.headers.get("content-type", "")
        if content_type and not content_type.startswith("image/"):
            raise RasterProviderError(f"Raster provider returned non-image content: {content_type}")

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content


# Singleton instance
_raster_client: Optional[RasterProviderClient] = None


def get_raster_client() -> RasterProviderClient:
    """
    Get or create the singleton raster provider client.

    Returns:
        RasterProviderClient instance
    """
    global _raster_client
    if _raster_client is None:
        _raster_client = RasterProviderClient()
    return _raster_client


async def close_raster_client() -> None:
    """Close and drop the singleton raster provider client, if any."""
    global _raster_client
    if _raster_client is not None:
        await _raster_client.close()
        _raster_client = None
