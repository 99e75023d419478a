"""Scene data model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from ..config import DEFAULT_SCENE_SECONDS

VIDEO_SUFFIXES = (".mp4", ".mov", ".webm")


class MediaType(str, Enum):
    """Kind of background asset a scene shows."""
    IMAGE = "image"
    VIDEO = "video"


class SceneStatus(str, Enum):
    """Generation status set by the upstream pipeline."""
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class Scene(BaseModel):
    """One narrated segment of the final video."""

    id: str = Field(..., description="Unique scene identifier")
    order_index: int = Field(..., description="Zero-based playback position")
    text: str = Field(default="", description="Caption text, rendered verbatim")
    media_ref: Optional[str] = Field(
        None, alias="image_url", description="URL or path of the image/video asset"
    )
    media_type: MediaType = Field(default=MediaType.IMAGE, description="Asset kind")
    audio_ref: Optional[str] = Field(
        None, alias="audio_url", description="URL or path of the narration audio"
    )
    duration_seconds: Optional[float] = Field(
        None, alias="duration", description="Scene length, from the narration audio"
    )
    attribution: Optional[str] = Field(None, description="Stock media credit")
    status: SceneStatus = Field(default=SceneStatus.READY, description="Upstream status")

    class Config:
        """Pydantic config."""
        frozen = True
        populate_by_name = True

    @property
    def is_video(self) -> bool:
        """True when the background should be sampled as a video clip."""
        if self.media_type == MediaType.VIDEO:
            return True
        if self.media_ref:
            path = self.media_ref.split("?", 1)[0].lower()
            return path.endswith(VIDEO_SUFFIXES)
        return False

    @property
    def effective_duration(self) -> float:
        """Duration in seconds, falling back when upstream left it unset."""
        if self.duration_seconds is None:
            return DEFAULT_SCENE_SECONDS
        return self.duration_seconds
