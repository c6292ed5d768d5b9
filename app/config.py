"""Application configuration management."""

from typing import Optional
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from creative_studio.core.models import GenerationParams


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.

    Attributes:
        generation_endpoint: URL the generation requests are POSTed to
        request_timeout: Per-request timeout in seconds (None = no timeout)
        default_width: Default image width (512 or 768 depending on deployment)
        default_height: Default image height
        default_steps: Default number of refinement steps
        default_guidance_scale: Default guidance scale
        default_seed: Default seed (-1 = random)
        default_negative_prompt: Default negative prompt
        max_image_count: Largest batch the UI offers
        state_dir: Directory holding persisted history and theme
        max_history: Maximum number of history entries kept
        persist_batch_history: Record multi-image batches in history too
        export_dir: Directory downloads are written to
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        run_integration_tests: Whether to run integration tests
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Generation service
    generation_endpoint: str = "http://localhost:3000/api/generate-image"
    request_timeout: Optional[float] = 120.0

    # Request defaults
    default_width: int = 512
    default_height: int = 512
    default_steps: int = 20
    default_guidance_scale: float = 7.5
    default_seed: int = -1
    default_negative_prompt: str = ""
    max_image_count: int = 4

    # Persistence
    state_dir: str = ".creative_studio"
    max_history: Optional[int] = 50
    persist_batch_history: bool = False
    export_dir: str = "exports"

    # Application Settings
    log_level: str = "INFO"
    server_name: str = "0.0.0.0"
    server_port: int = 7861

    # Testing
    run_integration_tests: bool = False

    def validate_settings(self) -> None:
        """Validate values that pydantic types alone cannot express.

        Raises:
            ValueError: If a setting is unusable
        """
        if not self.generation_endpoint.startswith(("http://", "https://")):
            raise ValueError(
                "GENERATION_ENDPOINT must be an http(s) URL. "
                "Please set it in your .env file or environment variables."
            )

        try:
            GenerationParams(
                width=self.default_width,
                height=self.default_height,
                steps=self.default_steps,
                guidance_scale=self.default_guidance_scale,
                seed=self.default_seed,
                negative_prompt=self.default_negative_prompt,
            )
        except ValidationError as e:
            fields = sorted({f"DEFAULT_{str(err['loc'][0]).upper()}" for err in e.errors()})
            raise ValueError(
                f"Invalid generation defaults: {', '.join(fields)}. "
                f"Width and height must be between 64 and 2048, steps between 1 and 150."
            ) from e

        if self.max_image_count < 1:
            raise ValueError("MAX_IMAGE_COUNT must be at least 1")

        if self.max_history is not None and self.max_history < 1:
            raise ValueError("MAX_HISTORY must be at least 1")


# Global settings instance
settings = Settings()
