from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .errors import FormatError


@dataclass(frozen=True, slots=True)
class ImagePart:
    """The transmittable portion of an uploaded image."""

    payload: str
    media_type: str

    def as_inline_data(self) -> Mapping[str, Any]:
        return {"inline_data": {"mime_type": self.media_type, "data": self.payload}}


@dataclass(frozen=True, slots=True)
class NormalizedImage:
    """A user-supplied image converted into a self-contained record.

    ``payload`` is the base64 body without the data-URL header. ``preview_handle``
    keeps the full data URL for rendering and is never sent upstream.
    """

    payload: str
    media_type: str
    preview_handle: str
    width: int
    height: int

    def __post_init__(self) -> None:
        if not self.payload:
            raise FormatError("Image payload is empty.")
        if self.width < 1 or self.height < 1:
            raise FormatError(f"Invalid image dimensions: {self.width}x{self.height}")

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def to_part(self) -> ImagePart:
        return ImagePart(payload=self.payload, media_type=self.media_type)


class WorkflowPhase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class WorkflowState:
    """Snapshot of the orchestrator's held state, safe to hand to observers."""

    person_image: NormalizedImage | None = None
    garment_image: NormalizedImage | None = None
    garment_description: str = ""
    is_generating: bool = False
    results: tuple[str, ...] = field(default_factory=tuple)
    last_error: str | None = None
    phase: WorkflowPhase = WorkflowPhase.IDLE

    @property
    def can_generate(self) -> bool:
        return (
            self.person_image is not None
            and self.garment_image is not None
            and not self.is_generating
        )
