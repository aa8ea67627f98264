"""Outbound call to the image-generation provider.

:class:`ImageGateway` is the interface the service depends on;
:class:`FalImageGateway` implements it over HTTP with ``httpx``.

Outcome Mapping
---------------
=========================================  ===============================
Provider outcome                           Raised
=========================================  ===============================
2xx with ``image.url`` or ``images[0].url``  (returns the URL)
2xx without an extractable URL             :class:`UpstreamError`
429                                        :class:`UpstreamBusyError`
402                                        :class:`UpstreamUnavailableError`
any other non-2xx                          :class:`UpstreamError`
transport failure or timeout               :class:`UpstreamError`
=========================================  ===============================

Exactly one attempt is made per call.  Retrying is left to the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from studiogen.core.errors import (
    ConfigurationError,
    UpstreamBusyError,
    UpstreamError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


class ImageGateway(ABC):
    """Sends a compiled payload to an image provider and returns the image URL."""

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether the gateway holds the credential it needs."""

    @abstractmethod
    async def generate(self, payload: dict[str, Any]) -> str:
        """Submit *payload* and return the generated image URL."""


def extract_image_url(data: Any) -> str | None:
    """Find the image URL in a provider response body.

    Two shapes are accepted: ``{"image": {"url": ...}}`` and
    ``{"images": [{"url": ...}, ...]}``.  The singular form wins when both
    are present.
    """
    if not isinstance(data, dict):
        return None

    image = data.get("image")
    if isinstance(image, dict):
        url = image.get("url")
        if isinstance(url, str) and url:
            return url

    images = data.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict):
        url = images[0].get("url")
        if isinstance(url, str) and url:
            return url

    return None


class FalImageGateway(ImageGateway):
    """HTTP gateway to the fal.ai structured-prompt endpoint.

    Args:
        api_key: Provider credential.  ``None`` or blank leaves the gateway
            unconfigured; :meth:`generate` then raises
            :class:`ConfigurationError`.
        url: Generation endpoint.
        timeout: Seconds before the single attempt is abandoned.
        client: Shared ``httpx.AsyncClient``.  When omitted a client is
            created per call.
    """

    def __init__(
        self,
        api_key: str | None,
        url: str = "https://fal.run/bria/fibo/generate",
        *,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self.url = url
        self.timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    async def generate(self, payload: dict[str, Any]) -> str:
        if not self.configured:
            raise ConfigurationError("Upstream credential is not configured")

        headers = {
            "Authorization": f"Key {self._api_key}",
            "Content-Type": "application/json",
        }

        logger.info("Sending request to image generation service")
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Transport error calling image provider: %r", exc)
            raise UpstreamError(f"Transport error: {exc!r}", original_error=exc) from exc

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> str:
        if not response.is_success:
            logger.error(
                "External API error - Status: %d, Details: %s",
                response.status_code,
                response.text,
            )
            if response.status_code == 429:
                raise UpstreamBusyError(f"Provider throttled request ({response.status_code})")
            if response.status_code == 402:
                raise UpstreamUnavailableError(
                    f"Provider refused for billing/quota ({response.status_code})"
                )
            raise UpstreamError(f"Provider returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Image provider returned a non-JSON body")
            raise UpstreamError("Provider returned a non-JSON body", original_error=exc) from exc

        image_url = extract_image_url(data)
        if not image_url:
            logger.error("No image URL in API response")
            raise UpstreamError("Provider response did not contain an image URL")

        logger.info("Image generation successful")
        return image_url
