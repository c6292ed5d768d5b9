"""Core data models for prompt-to-image generation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

# Sentinel seed: the service picks a random seed.
RANDOM_SEED = -1


class GenerationParams(BaseModel):
    """Generation parameters shared by every image in a request.

    Attributes:
        width: Output image width in pixels
        height: Output image height in pixels
        steps: Number of refinement steps
        guidance_scale: How closely to follow the prompt
        seed: Seed for reproducibility (-1 = service chooses)
        negative_prompt: Text describing what to avoid in the image
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    width: int = Field(default=512, ge=64, le=2048, description="Output image width in pixels")
    height: int = Field(default=512, ge=64, le=2048, description="Output image height in pixels")
    steps: int = Field(default=20, ge=1, le=150, description="Number of refinement steps")
    guidance_scale: float = Field(
        default=7.5,
        ge=0.0,
        le=30.0,
        description="How closely to follow the prompt"
    )
    seed: int = Field(
        default=RANDOM_SEED,
        description="Seed for reproducibility (-1 = random)"
    )
    negative_prompt: str = Field(
        default="",
        max_length=1000,
        description="Text describing what to avoid in the image"
    )


class GenerationRequest(GenerationParams):
    """A complete, immutable request for one or more images.

    The prompt is trimmed and checked by the payload builder; the model
    itself does not reject empty prompts so the orchestrator can apply its
    own check at dispatch time.
    """

    prompt: str = Field(..., max_length=1000, description="Text prompt describing the desired image")

    @property
    def params(self) -> GenerationParams:
        """Parameters of this request without the prompt."""
        return GenerationParams(**self.model_dump(exclude={"prompt"}))

    def to_payload(self) -> Dict[str, Any]:
        """Build the JSON body sent to the generation endpoint."""
        return {
            "prompt": self.prompt,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "guidance_scale": self.guidance_scale,
            "seed": self.seed,
            "negative_prompt": self.negative_prompt,
        }


class GenerationResult(BaseModel):
    """One rendered image as returned by the service.

    Attributes:
        image: Opaque image reference (URL or data URL)
        prompt: Prompt echoed back by the service
        settings: Effective parameters echoed back by the service
        timestamp: Client-side capture time in epoch milliseconds
    """

    model_config = ConfigDict(frozen=True)

    image: str
    prompt: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    timestamp: int


class HistoryEntry(BaseModel):
    """A persisted record of one successful generation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    image: str
    prompt: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(alias="createdAt")

    @classmethod
    def from_result(
        cls,
        result: GenerationResult,
        entry_id: str,
        created_at: Optional[datetime] = None
    ) -> "HistoryEntry":
        """Create a history entry from a generation result."""
        created_at = created_at or datetime.now(timezone.utc)
        return cls(
            id=entry_id,
            image=result.image,
            prompt=result.prompt,
            settings=dict(result.settings),
            created_at=created_at.isoformat(),
        )

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with the persisted field names."""
        return self.model_dump(by_alias=True)


class Theme(str, Enum):
    """UI colour theme."""
    DARK = "dark"
    LIGHT = "light"


class SlotStatus(Enum):
    """Progress of a single call within a batch."""
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


class Phase(Enum):
    """Orchestrator lifecycle phase."""
    IDLE = "idle"
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    SETTLED = "settled"


@dataclass(frozen=True)
class Slot:
    """One position in a batch."""
    index: int
    status: SlotStatus = SlotStatus.PENDING
    result: Optional[GenerationResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class GenerationState:
    """Immutable snapshot of the orchestrator, delivered to listeners.

    Attributes:
        phase: Current lifecycle phase
        slots: Per-call progress while dispatching (ordered by dispatch index)
        results: Ordered results once settled successfully
        error: User-visible failure message once settled unsuccessfully
    """
    phase: Phase = Phase.IDLE
    slots: Tuple[Slot, ...] = field(default_factory=tuple)
    results: Tuple[GenerationResult, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.phase in (Phase.VALIDATING, Phase.DISPATCHING)

    @property
    def succeeded(self) -> bool:
        return self.phase is Phase.SETTLED and self.error is None

    @property
    def failed(self) -> bool:
        return self.phase is Phase.SETTLED and self.error is not None
