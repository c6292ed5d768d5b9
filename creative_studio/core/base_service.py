"""Abstract base class for image generation services."""

from abc import ABC, abstractmethod

from .models import GenerationRequest, GenerationResult


class GenerationService(ABC):
    """Interface of the external service that renders images.

    The orchestrator only depends on this contract, so the HTTP client can be
    swapped for a fake in tests or another transport later.
    """

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Render one image for ``request``.

        Args:
            request: The generation request

        Returns:
            GenerationResult with the image reference and echoed settings

        Raises:
            ServiceError: If the service rejects the request or is unreachable
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this service."""

    async def aclose(self) -> None:
        """Release any resources held by the service."""

    def __repr__(self) -> str:
        """String representation of the service."""
        return f"{self.__class__.__name__}(name='{self.name}')"
