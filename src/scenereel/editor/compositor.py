"""Composition driver: per-frame layering of scenes, effects and captions."""

import logging
import math
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from itertools import islice
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np
from moviepy import VideoClip
from PIL import Image, ImageDraw, ImageEnhance

from ..config import FPS
from ..models import CaptionFont, ProjectSettings, Scene
from ..services.assets import AssetError, AssetFetcher
from .audio import (
    AudioFeatureCache,
    AudioFeatures,
    build_narration,
    close_narration,
    load_audio_features,
)
from .camera import STATIC, CameraTransform, movement_for, resolve_camera
from .media import MediaLibrary, MediaSource, apply_camera
from .overlays import CaptionTransform, add_text_overlay, get_style, load_font, resolve_caption
from .timeline import SceneWindow, Timeline, build_timeline
from .transitions import IDENTITY, TransitionTransform, resolve_transition
from .waveform import WaveformTransform, draw_waveform, resolve_waveform

logger = logging.getLogger(__name__)

EMPTY_BACKGROUND = (0, 0, 0)
PLACEHOLDER_BACKGROUND = (17, 24, 39)

WAITING_TEXT = "Waiting for scenes..."
GENERATING_TEXT = "Generating Image..."
UNAVAILABLE_TEXT = "Media unavailable"

IN_FLIGHT_PER_WORKER = 2


class CompositionStatus(str, Enum):
    """Aggregate outcome of preparing a composition."""
    OK = "ok"
    DEGRADED = "degraded"
    NO_CONTENT = "no_content"
    FAILED = "failed"


class RenderState(str, Enum):
    """Lifecycle of a render job."""
    NOT_STARTED = "not_started"
    RENDERING = "rendering"
    COMPLETE = "complete"


@dataclass(frozen=True)
class FrameContext:
    """Everything the resolvers may look at for one output frame."""

    global_frame: int
    window: Optional[SceneWindow]
    local_frame: int
    settings: ProjectSettings
    fps: int
    width: int
    height: int


@dataclass(frozen=True)
class FramePlan:
    """Pure description of one output frame, layered back to front."""

    global_frame: int
    width: int
    height: int
    scene_id: Optional[str] = None
    local_frame: int = 0
    media_ref: Optional[str] = None
    placeholder: Optional[str] = None
    camera: CameraTransform = STATIC
    waveform: Optional[WaveformTransform] = None
    caption: Optional[CaptionTransform] = None
    transition: TransitionTransform = IDENTITY


class Composition:
    """Renders any frame of a project from its scenes and settings.

    Assets are decoded once in ``prepare``; after that every frame is a
    pure function of its index, so frames can be rendered in any order and
    from several threads.
    """

    def __init__(
        self,
        scenes: Iterable[Scene],
        settings: Optional[ProjectSettings] = None,
        fps: int = FPS,
        fetcher: Optional[AssetFetcher] = None,
    ) -> None:
        """Initialize the composition.

        Args:
            scenes: Ready scenes in any order.
            settings: Project settings. Defaults apply when omitted.
            fps: Output frame rate.
            fetcher: Resolves media and audio references to files.
        """
        self.settings = settings or ProjectSettings()
        self.fps = fps
        self.timeline: Timeline = build_timeline(scenes, fps)
        self.width, self.height = self.settings.resolution

        self._fetcher = fetcher or AssetFetcher()
        self._media = MediaLibrary(self._fetcher, (self.width, self.height))
        self._audio = AudioFeatureCache()
        self._backgrounds: Dict[str, Optional[MediaSource]] = {}
        self._features: Dict[str, AudioFeatures] = {}
        self._media_failures: Dict[str, str] = {}
        self._audio_failures: Dict[str, str] = {}
        self._prepared = False
        self._prepare_lock = threading.Lock()

    @property
    def total_frames(self) -> int:
        return self.timeline.total_frames

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def failures(self) -> Dict[str, str]:
        """Scene id to reason, for scenes whose media could not be loaded."""
        return dict(self._media_failures)

    @property
    def status(self) -> CompositionStatus:
        if self.timeline.is_empty:
            return CompositionStatus.NO_CONTENT
        self.prepare()

        windows = self.timeline.windows
        if all(window.scene.id in self._media_failures for window in windows):
            return CompositionStatus.FAILED
        if self.timeline.skipped or self._media_failures or self._audio_failures:
            return CompositionStatus.DEGRADED
        return CompositionStatus.OK

    def prepare(self) -> "Composition":
        """Fetch and decode every scene's assets once.

        Failures are recorded per scene and rendered as placeholders; this
        never raises for a single bad asset.
        """
        with self._prepare_lock:
            if self._prepared:
                return self

            wave_enabled = self.settings.audio_wave.enabled
            for window in self.timeline.windows:
                scene = window.scene
                try:
                    self._backgrounds[scene.id] = self._media.load(scene)
                except AssetError as e:
                    logger.warning(f"Scene {scene.id}: {e}")
                    self._backgrounds[scene.id] = None
                    self._media_failures[scene.id] = str(e)

                if wave_enabled and scene.audio_ref:
                    try:
                        self._features[scene.id] = self._audio.get(
                            scene.audio_ref, self._load_features
                        )
                    except (AssetError, OSError, ValueError) as e:
                        logger.warning(f"Scene {scene.id}: no waveform, audio failed: {e}")
                        self._audio_failures[scene.id] = str(e)

            self._prepared = True
            logger.info(
                f"Prepared {len(self.timeline.windows)} scenes "
                f"({len(self._media_failures)} media failures, "
                f"{len(self._audio_failures)} audio failures)"
            )
            return self

    def _load_features(self, audio_ref: str) -> AudioFeatures:
        return load_audio_features(self._fetcher.resolve(audio_ref), self.fps)

    def context_for(self, frame: int) -> FrameContext:
        """Locate ``frame`` on the timeline, clamping it into range."""
        frame = min(max(0, frame), self.total_frames - 1)
        window = self.timeline.window_at(frame)
        return FrameContext(
            global_frame=frame,
            window=window,
            local_frame=window.local_frame(frame) if window else frame,
            settings=self.settings,
            fps=self.fps,
            width=self.width,
            height=self.height,
        )

    def plan_frame(self, frame: int) -> FramePlan:
        """Resolve every effect for ``frame`` without touching pixels."""
        self.prepare()
        ctx = self.context_for(frame)

        if ctx.window is None:
            return FramePlan(
                global_frame=ctx.global_frame,
                width=ctx.width,
                height=ctx.height,
                placeholder=WAITING_TEXT,
            )

        scene = ctx.window.scene
        count = ctx.window.frame_count
        settings = ctx.settings

        placeholder = None
        if scene.id in self._media_failures:
            placeholder = UNAVAILABLE_TEXT
        elif self._backgrounds.get(scene.id) is None:
            placeholder = GENERATING_TEXT

        movement = movement_for(scene.order_index, settings.camera_movements)

        waveform = None
        features = self._features.get(scene.id)
        if settings.audio_wave.enabled and features is not None:
            waveform = resolve_waveform(
                features.spectrum(ctx.local_frame), settings.audio_wave, ctx.height
            )

        caption = None
        if settings.captions.enabled:
            caption = resolve_caption(
                ctx.local_frame, count, scene.text, settings.captions.animation
            )

        return FramePlan(
            global_frame=ctx.global_frame,
            width=ctx.width,
            height=ctx.height,
            scene_id=scene.id,
            local_frame=ctx.local_frame,
            media_ref=scene.media_ref,
            placeholder=placeholder,
            camera=resolve_camera(ctx.local_frame, count, movement),
            waveform=waveform,
            caption=caption,
            transition=resolve_transition(
                ctx.local_frame, settings.transitions.type, ctx.fps
            ),
        )

    def render_image(self, frame: int) -> Image.Image:
        """Rasterize ``frame`` to an RGB image."""
        plan = self.plan_frame(frame)
        size = (plan.width, plan.height)

        if plan.scene_id is None:
            canvas = Image.new("RGB", size, EMPTY_BACKGROUND)
            return _draw_status(canvas, plan.placeholder or WAITING_TEXT, 36)

        source = self._backgrounds.get(plan.scene_id)
        if plan.placeholder or source is None:
            canvas = Image.new("RGB", size, PLACEHOLDER_BACKGROUND)
            _draw_status(canvas, plan.placeholder or GENERATING_TEXT, 32)
        else:
            background = source.frame_at(plan.local_frame / self.fps)
            canvas = apply_camera(background, plan.camera).copy()

        if plan.waveform is not None:
            draw_waveform(canvas, plan.waveform)

        if plan.caption is not None:
            style = get_style(self.settings.captions, plan.width, plan.height)
            add_text_overlay(canvas, plan.caption, style, self.settings.captions.position)

        return _apply_transition(canvas, plan.transition)

    def render_frame(self, frame: int) -> np.ndarray:
        """Rasterize ``frame`` to a ``(height, width, 3)`` uint8 array."""
        return np.asarray(self.render_image(frame), dtype=np.uint8)

    def narration_tracks(self) -> List[Tuple[Path, float, float]]:
        """``(path, start_seconds, max_seconds)`` for every scene with narration."""
        tracks: List[Tuple[Path, float, float]] = []
        for window in self.timeline.windows:
            ref = window.scene.audio_ref
            if not ref:
                continue
            try:
                path = self._fetcher.resolve(ref)
            except AssetError as e:
                logger.warning(f"Scene {window.scene.id}: omitting narration: {e}")
                continue
            tracks.append((path, window.start_frame / self.fps, window.frame_count / self.fps))
        return tracks

    def close(self) -> None:
        self._media.close()


def _draw_status(canvas: Image.Image, text: str, size: int) -> Image.Image:
    draw = ImageDraw.Draw(canvas)
    font = load_font(CaptionFont.HELVETICA, size)
    width, height = canvas.size
    text_w = draw.textlength(text, font=font)
    draw.text(((width - text_w) / 2, (height - size) / 2), text, font=font, fill="white")
    return canvas


def _apply_transition(canvas: Image.Image, transition: TransitionTransform) -> Image.Image:
    if transition.is_identity:
        return canvas
    if transition.brightness != 1.0:
        canvas = ImageEnhance.Brightness(canvas).enhance(transition.brightness)
    if transition.contrast != 1.0:
        canvas = ImageEnhance.Contrast(canvas).enhance(transition.contrast)
    if transition.opacity < 1.0:
        black = Image.new("RGB", canvas.size, EMPTY_BACKGROUND)
        canvas = Image.blend(black, canvas, max(0.0, transition.opacity))
    return canvas


FrameSink = Callable[[int, np.ndarray], None]


class RenderJob:
    """Renders a frame range of a composition, frame by frame.

    Frames are independent, so a job may be one slice of a larger render
    farmed out to several workers.
    """

    def __init__(
        self,
        composition: Composition,
        start: int = 0,
        end: Optional[int] = None,
    ) -> None:
        """Initialize the job.

        Args:
            composition: Composition to render.
            start: First frame, inclusive.
            end: Last frame, exclusive. Defaults to the end of the timeline.

        Raises:
            ValueError: If the range is empty or outside the timeline.
        """
        total = composition.total_frames
        end = total if end is None else end
        if not (0 <= start < end <= total):
            raise ValueError(f"Invalid frame range [{start}, {end}) for {total} frames")

        self.composition = composition
        self.start = start
        self.end = end
        self.state = RenderState.NOT_STARTED
        self.frames_rendered = 0

    @property
    def frame_count(self) -> int:
        return self.end - self.start

    def frames(self) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield ``(frame_index, pixels)`` in order."""
        self.state = RenderState.RENDERING
        self.composition.prepare()
        for index in range(self.start, self.end):
            yield index, self.composition.render_frame(index)
            self.frames_rendered += 1
        self.state = RenderState.COMPLETE

    def run(self, sink: FrameSink, parallel: int = 1) -> int:
        """Render every frame of the range into ``sink``.

        Args:
            sink: Called with ``(frame_index, pixels)`` for each frame. With
                ``parallel > 1`` calls arrive in completion order.
            parallel: Number of worker threads.

        Returns:
            Number of frames rendered.
        """
        if parallel <= 1:
            for index, pixels in self.frames():
                sink(index, pixels)
            return self.frames_rendered

        self.state = RenderState.RENDERING
        self.composition.prepare()
        render = self.composition.render_frame
        indices = iter(range(self.start, self.end))

        # At most IN_FLIGHT_PER_WORKER frames per worker are held at once
        with ThreadPoolExecutor(max_workers=parallel) as executor:
            pending = {
                executor.submit(render, index): index
                for index in islice(indices, parallel * IN_FLIGHT_PER_WORKER)
            }
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                while done:
                    future = done.pop()
                    index = pending.pop(future)
                    pixels = future.result()
                    del future
                    sink(index, pixels)
                    del pixels
                    self.frames_rendered += 1

                    for next_index in islice(indices, 1):
                        pending[executor.submit(render, next_index)] = next_index

        self.state = RenderState.COMPLETE
        return self.frames_rendered


def to_video_clip(composition: Composition) -> VideoClip:
    """Wrap a composition as a moviepy clip with its narration attached."""
    fps = composition.fps
    last = composition.total_frames - 1

    def frame_function(t: float) -> np.ndarray:
        index = min(last, max(0, int(math.floor(t * fps + 1e-6))))
        return composition.render_frame(index)

    clip = VideoClip(frame_function, duration=composition.total_frames / fps)
    narration = build_narration(composition.narration_tracks())
    if narration is not None:
        clip = clip.with_audio(narration)
    return clip


def export(
    composition: Composition,
    output_path: Path,
    codec: str = "libx264",
    audio_codec: str = "aac",
    bitrate: Optional[str] = None,
    preset: str = "medium"
) -> Path:
    """Export a composition to a video file through moviepy.

    Args:
        composition: Composition to render.
        output_path: Path for output file.
        codec: Video codec (default libx264).
        audio_codec: Audio codec (default aac).
        bitrate: Video bitrate (e.g., "5000k"). None for auto.
        preset: Encoding preset (ultrafast, fast, medium, slow, slower).

    Returns:
        Path to the exported video file.
    """
    # Ensure output directory exists
    output_path.parent.mkdir(parents=True, exist_ok=True)

    composition.prepare()
    video = to_video_clip(composition)

    # Build export parameters
    export_params = {
        "fps": composition.fps,
        "codec": codec,
        "audio_codec": audio_codec,
        "preset": preset,
    }

    if bitrate:
        export_params["bitrate"] = bitrate

    try:
        video.write_videofile(str(output_path), **export_params)
    finally:
        if video.audio is not None:
            close_narration(video.audio)
        video.close()

    return output_path
