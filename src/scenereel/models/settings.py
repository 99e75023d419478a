"""Project-wide style settings shared by every scene of a render."""

import logging
from enum import Enum
from typing import Any, List, Tuple, Type
from pydantic import BaseModel, Field, field_validator

from ..config import RESOLUTIONS

logger = logging.getLogger(__name__)


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"


class Position(str, Enum):
    """Vertical anchor used by captions and the audio wave."""
    TOP = "top"
    CENTER = "center"
    MID_BOTTOM = "mid-bottom"
    BOTTOM = "bottom"


class CaptionFont(str, Enum):
    HELVETICA = "helvetica"
    SERIF = "serif"
    BRUSH = "brush"
    MONOSPACE = "monospace"


class FontSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class CaptionAnimation(str, Enum):
    NONE = "none"
    TYPEWRITER = "typewriter"
    FADE_IN = "fade-in"
    SLIDE_UP = "slide-up"
    BOUNCE = "bounce"


class StrokeWidth(str, Enum):
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"
    BOLD = "bold"


class TransitionType(str, Enum):
    NONE = "none"
    FADEIN = "fadein"
    CROSSFADE = "crossfade"
    WHITE_FLASH = "white_flash"
    CAMERA_FLASH = "camera_flash"


class CameraMovement(str, Enum):
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    PAN_LEFT = "pan_left"
    PAN_RIGHT = "pan_right"
    PAN_UP = "pan_up"
    PAN_DOWN = "pan_down"
    STATIC = "static"


def coerce_enum(enum_cls: Type[Enum], value: Any, fallback: Enum) -> Enum:
    """Map a raw setting onto ``enum_cls``, using ``fallback`` for unknown values."""
    if value is None:
        return fallback
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            f"Unknown {enum_cls.__name__} value {value!r}, using {fallback.value!r}"
        )
        return fallback


class CaptionSettings(BaseModel):
    """Caption overlay configuration."""

    enabled: bool = True
    position: Position = Position.BOTTOM
    font: CaptionFont = CaptionFont.HELVETICA
    font_size: FontSize = Field(default=FontSize.MEDIUM, alias="fontSize")
    animation: CaptionAnimation = CaptionAnimation.TYPEWRITER
    stroke_width: StrokeWidth = Field(default=StrokeWidth.MEDIUM, alias="strokeWidth")

    class Config:
        """Pydantic config."""
        frozen = True
        populate_by_name = True

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, value: Any) -> Position:
        return coerce_enum(Position, value, Position.BOTTOM)

    @field_validator("font", mode="before")
    @classmethod
    def _font(cls, value: Any) -> CaptionFont:
        return coerce_enum(CaptionFont, value, CaptionFont.HELVETICA)

    @field_validator("font_size", mode="before")
    @classmethod
    def _font_size(cls, value: Any) -> FontSize:
        return coerce_enum(FontSize, value, FontSize.MEDIUM)

    @field_validator("animation", mode="before")
    @classmethod
    def _animation(cls, value: Any) -> CaptionAnimation:
        if value is None:
            return CaptionAnimation.TYPEWRITER
        return coerce_enum(CaptionAnimation, value, CaptionAnimation.NONE)

    @field_validator("stroke_width", mode="before")
    @classmethod
    def _stroke_width(cls, value: Any) -> StrokeWidth:
        return coerce_enum(StrokeWidth, value, StrokeWidth.MEDIUM)


class AudioWaveSettings(BaseModel):
    """Audio-reactive waveform configuration."""

    enabled: bool = False
    position: Position = Position.BOTTOM
    color: str = "#ffffff"

    class Config:
        """Pydantic config."""
        frozen = True

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, value: Any) -> Position:
        return coerce_enum(Position, value, Position.BOTTOM)


class TransitionSettings(BaseModel):
    """Transition played at the start of every scene."""

    type: TransitionType = TransitionType.NONE

    class Config:
        """Pydantic config."""
        frozen = True

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> TransitionType:
        return coerce_enum(TransitionType, value, TransitionType.NONE)


class ProjectSettings(BaseModel):
    """Global settings for one render."""

    aspect_ratio: AspectRatio = Field(default=AspectRatio.LANDSCAPE, alias="aspectRatio")
    captions: CaptionSettings = Field(default_factory=CaptionSettings)
    audio_wave: AudioWaveSettings = Field(
        default_factory=AudioWaveSettings, alias="audioWave"
    )
    transitions: TransitionSettings = Field(default_factory=TransitionSettings)
    camera_movements: Tuple[CameraMovement, ...] = Field(
        default=(CameraMovement.ZOOM_IN,), alias="cameraMovements"
    )

    class Config:
        """Pydantic config."""
        frozen = True
        populate_by_name = True

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _aspect_ratio(cls, value: Any) -> AspectRatio:
        return coerce_enum(AspectRatio, value, AspectRatio.LANDSCAPE)

    @field_validator("captions", "audio_wave", "transitions", mode="before")
    @classmethod
    def _missing_section(cls, value: Any) -> Any:
        # A null section means "use the defaults"
        return {} if value is None else value

    @field_validator("camera_movements", mode="before")
    @classmethod
    def _camera_movements(cls, value: Any) -> Tuple[CameraMovement, ...]:
        if value is None:
            return (CameraMovement.ZOOM_IN,)
        if isinstance(value, str):
            value = [value]
        movements: List[CameraMovement] = [
            coerce_enum(CameraMovement, item, CameraMovement.STATIC) for item in value
        ]
        if not movements:
            return (CameraMovement.STATIC,)
        return tuple(movements)

    @property
    def resolution(self) -> Tuple[int, int]:
        """Output (width, height) in pixels for the aspect ratio."""
        return RESOLUTIONS[self.aspect_ratio.value]
