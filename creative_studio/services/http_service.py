"""HTTP client for the remote image generation endpoint."""

import logging
import time
from typing import Optional, Any

import httpx

from creative_studio.core.base_service import GenerationService
from creative_studio.core.exceptions import ServiceError
from creative_studio.core.models import GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Generation failed"


class HttpGenerationService(GenerationService):
    """Generation service reached with one JSON POST per image.

    Attributes:
        endpoint: URL of the generation endpoint
        timeout: Request timeout in seconds (None = no timeout)
        client: httpx.AsyncClient used for requests
    """

    def __init__(
        self,
        endpoint: str,
        timeout: Optional[float] = 120.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """Initialize the HTTP service.

        Args:
            endpoint: URL of the generation endpoint
            timeout: Request timeout in seconds
            client: Optional pre-configured client (owned by the caller)

        Raises:
            ValueError: If endpoint is empty
        """
        if not endpoint:
            raise ValueError("Generation endpoint is required")

        self.endpoint = endpoint
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        logger.info(f"Initialized HTTP generation service: {self.endpoint}")

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """POST the request payload and parse the service response.

        Args:
            request: The generation request

        Returns:
            GenerationResult stamped with the client-side capture time

        Raises:
            ServiceError: On transport failure, non-2xx status or malformed body
        """
        logger.info(f"Requesting image for prompt: {request.prompt[:50]}...")

        try:
            response = await self.client.post(self.endpoint, json=request.to_payload())
        except httpx.HTTPError as e:
            logger.error(f"Generation request failed: {e}")
            raise ServiceError(str(e) or GENERIC_FAILURE_MESSAGE) from e

        data = self._parse_body(response)

        if not response.is_success:
            message = GENERIC_FAILURE_MESSAGE
            if isinstance(data, dict) and data.get("error"):
                message = str(data["error"])
            logger.error(f"Generation service returned {response.status_code}: {message}")
            raise ServiceError(message, status_code=response.status_code)

        if not isinstance(data, dict) or not isinstance(data.get("image"), str):
            logger.error("Generation service returned a response without an image")
            raise ServiceError(GENERIC_FAILURE_MESSAGE, status_code=response.status_code)

        settings = data.get("settings")
        return GenerationResult(
            image=data["image"],
            prompt=str(data.get("prompt") or request.prompt),
            settings=settings if isinstance(settings, dict) else {},
            timestamp=int(time.time() * 1000),
        )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """Decode a JSON body, returning None when it is not JSON."""
        try:
            return response.json()
        except ValueError:
            return None

    async def aclose(self) -> None:
        """Close the underlying client if this service created it."""
        if self._owns_client:
            await self.client.aclose()

    @property
    def name(self) -> str:
        """Get the service name.

        Returns:
            The string "HTTP"
        """
        return "HTTP"
