"""Image generation clients.

:class:`ImageGenerationClient` is the seam between the controller and the
remote API.  :class:`OpenRouterClient` implements it on top of a shared
``httpx.AsyncClient``: one POST per generation unit, bearer authenticated.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

import httpx

from .errors import RemoteRequestFailed
from .models import GenerationRequest
from .request_builder import build_headers, build_request_body
from .response_parser import extract_image

logger = logging.getLogger(__name__)


class ImageGenerationClient(ABC):
    """Abstract base class for image generation backends.

    Implementations send exactly one request per call and never retry.
    """

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> str:
        """
        Generate a single image.

        Args:
            request: Prompt, credential, model capability and captured settings

        Returns:
            The image as a data URI or remote URL

        Raises:
            RemoteRequestFailed: On non-success status or transport failure
            NoImageInResponse: If the response carries no image
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources."""
        return None


class OpenRouterClient(ImageGenerationClient):
    """
    Image generation through OpenRouter's chat-completions endpoint.
    Supports every model in the capability table.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 120.0,
        referer: str = "http://127.0.0.1:7860",
        title: str = "Imagen Internal Tool",
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the OpenRouter client.

        Args:
            api_url: Chat-completions endpoint
            timeout: Per-request timeout in seconds
            referer: ``HTTP-Referer`` header identifying the app
            title: ``X-Title`` header identifying the app
            http_client: Pre-built client, mainly for tests. Created lazily if None.
        """
        self.api_url = api_url
        self.timeout = timeout
        self.referer = referer
        self.title = title
        self._http = http_client

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def generate(self, request: GenerationRequest) -> str:
        model_id = request.settings.model
        body = build_request_body(request.prompt, model_id, request.capability, request.settings)
        headers = build_headers(request.api_key, self.referer, self.title)

        logger.info(f"Generating image with {model_id}: {request.prompt[:50]}...")

        try:
            response = await self._client().post(self.api_url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise RemoteRequestFailed(f"Request to OpenRouter failed: {e}") from e

        if not response.is_success:
            raise RemoteRequestFailed(
                self._error_message(response), status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteRequestFailed(
                "OpenRouter returned a response that is not JSON",
                status_code=response.status_code,
            ) from e

        logger.debug(f"API response: {json.dumps(data, indent=2)}")
        return extract_image(data)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the API's own error message over a generic status line."""
        try:
            error = response.json().get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
        except (ValueError, AttributeError):
            message = None
        return message or f"API error: {response.status_code}"

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
