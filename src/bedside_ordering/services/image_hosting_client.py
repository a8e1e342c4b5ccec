"""Client for the third-party image hosting API."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ImageHostingClient:
    """HTTP client for uploading menu, restaurant and payment QR images.

    The host accepts a multipart upload and answers with a JSON body whose
    data section carries the public URL.
    """

    def __init__(self, upload_url: str, api_token: str, timeout_seconds: float = 30.0) -> None:
        """Initialize the image hosting client.

        Args:
            upload_url: Full URL of the upload endpoint (e.g., "https://picui.cn/api/v1/upload")
            api_token: Bearer token for the image host
            timeout_seconds: Request timeout
        """
        self.upload_url = upload_url
        self.api_token = api_token
        self.timeout_seconds = timeout_seconds

    async def upload_image(self, filename: str, content: bytes, content_type: str) -> str | None:
        """Upload an image and return its public URL.

        Args:
            filename: Original file name
            content: Image bytes
            content_type: MIME type of the image

        Returns:
            The hosted image URL, or None if the upload failed or no URL came back
        """
        headers = {"Authorization": f"Bearer {self.api_token}", "Accept": "application/json"}
        files = {"file": (filename, content, content_type)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.upload_url, headers=headers, files=files)
                response.raise_for_status()
                data = response.json()

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Failed to upload image {filename}: {e}")  # pragma: no cover
            return None
        except ValueError as e:
            logger.error(f"Image host returned an invalid response for {filename}: {e}")  # pragma: no cover
            return None

        url = extract_image_url(data)
        if url is None:
            logger.error(f"Image host response for {filename} contained no URL")  # pragma: no cover
        return url


def extract_image_url(data: Any) -> str | None:
    """Pull the image URL out of an upload response body."""
    if not isinstance(data, dict):
        return None

    payload = data.get("data")
    if not isinstance(payload, dict):
        return None

    links = payload.get("links")
    if isinstance(links, dict) and links.get("url"):
        return str(links["url"])

    if payload.get("url"):
        return str(payload["url"])

    return None
