"""Data models for the scene reel renderer."""

from .scene import Scene, MediaType, SceneStatus
from .settings import (
    AspectRatio,
    AudioWaveSettings,
    CameraMovement,
    CaptionAnimation,
    CaptionFont,
    CaptionSettings,
    FontSize,
    Position,
    ProjectSettings,
    StrokeWidth,
    TransitionSettings,
    TransitionType,
)
from .manifest import Manifest

__all__ = [
    "Scene",
    "MediaType",
    "SceneStatus",
    "AspectRatio",
    "AudioWaveSettings",
    "CameraMovement",
    "CaptionAnimation",
    "CaptionFont",
    "CaptionSettings",
    "FontSize",
    "Position",
    "ProjectSettings",
    "StrokeWidth",
    "TransitionSettings",
    "TransitionType",
    "Manifest",
]
