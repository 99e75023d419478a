"""Scene-start transitions."""

from dataclasses import dataclass
from typing import Callable, Dict

from ..config import FPS
from ..models import TransitionType
from .interpolation import interpolate

# Transitions play over the first 0.3s of every scene
TRANSITION_SECONDS = 0.3


@dataclass(frozen=True)
class TransitionTransform:
    """Whole-scene filter: opacity over black plus brightness/contrast."""

    opacity: float = 1.0
    brightness: float = 1.0
    contrast: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self.opacity == 1.0 and self.brightness == 1.0 and self.contrast == 1.0


IDENTITY = TransitionTransform()


def transition_window(fps: int = FPS) -> float:
    """Length of the transition in frames (9 at 30fps)."""
    return fps * TRANSITION_SECONDS


def _none(frame: float, window: float) -> TransitionTransform:
    return IDENTITY


def _fade(frame: float, window: float) -> TransitionTransform:
    return TransitionTransform(opacity=interpolate(frame, [0, window], [0, 1]))


def _white_flash(frame: float, window: float) -> TransitionTransform:
    flash = interpolate(frame, [0, window * 0.5, window], [1, 0, 0])
    return TransitionTransform(opacity=1.0, brightness=1 + flash * 3)


def _camera_flash(frame: float, window: float) -> TransitionTransform:
    return TransitionTransform(
        brightness=interpolate(frame, [0, window * 0.3, window], [2, 1, 1]),
        contrast=interpolate(frame, [0, window], [1.5, 1]),
    )


TRANSITIONS: Dict[TransitionType, Callable[[float, float], TransitionTransform]] = {
    TransitionType.NONE: _none,
    TransitionType.FADEIN: _fade,
    TransitionType.CROSSFADE: _fade,
    TransitionType.WHITE_FLASH: _white_flash,
    TransitionType.CAMERA_FLASH: _camera_flash,
}


def resolve_transition(
    local_frame: int,
    transition: TransitionType,
    fps: int = FPS,
) -> TransitionTransform:
    """Filter for ``local_frame`` of a scene; identity once the window has passed."""
    window = transition_window(fps)
    if local_frame >= window:
        return IDENTITY
    return TRANSITIONS.get(transition, _none)(local_frame, window)
