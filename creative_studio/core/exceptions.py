"""Error taxonomy for the generation flow."""

from typing import Optional


class StudioError(Exception):
    """Base class for all errors raised by creative_studio."""


class ValidationError(StudioError):
    """Local input error detected before any network call.

    Attributes:
        code: Short machine-readable reason (e.g. "empty-prompt")
        message: Human-readable message shown to the user
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ServiceError(StudioError):
    """The generation service returned a failure or could not be reached.

    Attributes:
        message: Service-supplied error text or a generic fallback
        status_code: HTTP status of the response, None for transport failures
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PersistenceError(StudioError):
    """Reading or writing durable state failed."""


class GenerationInProgressError(StudioError):
    """A generation was requested while another batch is still in flight."""
