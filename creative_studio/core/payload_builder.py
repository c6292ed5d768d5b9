"""Merge a user prompt with generation defaults into a request."""

import logging
from typing import Optional, Mapping, Any

from pydantic import ValidationError as PydanticValidationError

from creative_studio.core.exceptions import ValidationError
from creative_studio.core.models import GenerationParams, GenerationRequest

logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "Please enter a prompt"


def empty_prompt_error() -> ValidationError:
    """Error raised for a missing or whitespace-only prompt."""
    return ValidationError("empty-prompt", EMPTY_PROMPT_MESSAGE)


class PayloadBuilder:
    """Builds immutable GenerationRequests from a prompt and overrides.

    Attributes:
        defaults: Parameters used for any field the caller does not override
    """

    def __init__(self, defaults: Optional[GenerationParams] = None):
        """Initialize the builder.

        Args:
            defaults: Default parameters (hardcoded defaults if omitted)
        """
        self.defaults = defaults or GenerationParams()

    def build(
        self,
        prompt: Optional[str],
        overrides: Optional[Mapping[str, Any]] = None
    ) -> GenerationRequest:
        """Build a request from a prompt and parameter overrides.

        Args:
            prompt: Raw prompt text as typed by the user
            overrides: Parameter values replacing the defaults

        Returns:
            A validated GenerationRequest

        Raises:
            ValidationError: If the prompt is empty or an override is invalid
        """
        text = (prompt or "").strip()
        if not text:
            raise empty_prompt_error()

        overrides = dict(overrides or {})
        unknown = set(overrides) - set(GenerationParams.model_fields)
        if unknown:
            raise ValidationError(
                "invalid-parameters",
                f"Unknown generation parameters: {', '.join(sorted(unknown))}"
            )

        merged = {**self.defaults.model_dump(), **overrides}
        try:
            return GenerationRequest(prompt=text, **merged)
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            logger.debug(f"Rejected generation parameters: {e}")
            raise ValidationError(
                "invalid-parameters",
                f"Invalid generation parameters: {', '.join(fields)}"
            ) from e

    def remember(self, request: GenerationRequest) -> "PayloadBuilder":
        """Return a builder that defaults to the parameters of ``request``."""
        return PayloadBuilder(request.params)
