"""Frame-accurate timeline built from an ordered scene list."""

import bisect
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..config import FALLBACK_FRAMES, FPS
from ..models import Scene

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneWindow:
    """A scene's contiguous frame range ``[start_frame, end_frame)``."""

    scene: Scene
    start_frame: int
    frame_count: int

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.frame_count

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame < self.end_frame

    def local_frame(self, frame: int) -> int:
        """Frame index relative to this window's start."""
        return frame - self.start_frame


@dataclass(frozen=True)
class Timeline:
    """Ordered, non-overlapping scene windows starting at frame 0."""

    windows: Tuple[SceneWindow, ...]
    fps: int = FPS
    skipped: Tuple[Scene, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to show and a placeholder is rendered."""
        return not self.windows

    @property
    def total_frames(self) -> int:
        if not self.windows:
            return FALLBACK_FRAMES
        return self.windows[-1].end_frame

    @property
    def duration_seconds(self) -> float:
        return self.total_frames / self.fps

    def window_at(self, frame: int) -> Optional[SceneWindow]:
        """Return the window containing ``frame``, or None outside the timeline."""
        if not self.windows or frame < 0:
            return None
        starts = [window.start_frame for window in self.windows]
        index = bisect.bisect_right(starts, frame) - 1
        window = self.windows[index]
        return window if window.contains(frame) else None


def frame_count(duration_seconds: float, fps: int = FPS) -> int:
    """Frames needed to cover ``duration_seconds``, rounded up per scene."""
    return math.ceil(duration_seconds * fps)


def build_timeline(scenes: Iterable[Scene], fps: int = FPS) -> Timeline:
    """Lay scenes out back to back in ``order_index`` order.

    Scenes with a non-positive or non-finite duration cannot occupy frames;
    they are left out of the timeline and reported in ``Timeline.skipped``.

    Args:
        scenes: Scenes in any order.
        fps: Frames per second of the output.

    Returns:
        Timeline whose windows are contiguous and start at frame 0.
    """
    ordered = sorted(scenes, key=lambda scene: scene.order_index)

    windows: List[SceneWindow] = []
    skipped: List[Scene] = []
    cursor = 0

    for scene in ordered:
        duration = scene.effective_duration
        if not (math.isfinite(duration) and duration > 0):
            logger.warning(
                f"Skipping scene {scene.id}: invalid duration {duration}"
            )
            skipped.append(scene)
            continue

        count = frame_count(duration, fps)
        windows.append(SceneWindow(scene=scene, start_frame=cursor, frame_count=count))
        cursor += count

    timeline = Timeline(windows=tuple(windows), fps=fps, skipped=tuple(skipped))
    if timeline.is_empty:
        logger.info(f"No renderable scenes, using {FALLBACK_FRAMES} placeholder frames")
    else:
        logger.info(
            f"Timeline: {len(windows)} scenes, {timeline.total_frames} frames "
            f"({timeline.duration_seconds:.2f}s)"
        )
    return timeline
