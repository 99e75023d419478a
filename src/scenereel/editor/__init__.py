"""Scene timeline, effect resolvers and frame composition."""

from .timeline import (
    SceneWindow,
    Timeline,
    build_timeline,
    frame_count,
)
from .interpolation import Easing, interpolate
from .transitions import (
    TransitionTransform,
    resolve_transition,
    transition_window,
)
from .camera import (
    CameraTransform,
    movement_for,
    resolve_camera,
)
from .overlays import (
    CaptionTransform,
    TextStyle,
    font_size_for,
    get_style,
    resolve_caption,
    add_text_overlay,
)
from .waveform import (
    WaveformTransform,
    resolve_waveform,
    scale_magnitude,
    smooth_samples,
)
from .audio import (
    AudioFeatureCache,
    AudioFeatures,
    load_audio,
    load_audio_features,
)
from .compositor import (
    Composition,
    CompositionStatus,
    FrameContext,
    FramePlan,
    RenderJob,
    RenderState,
    export,
    to_video_clip,
)

__all__ = [
    # Timeline
    "SceneWindow",
    "Timeline",
    "build_timeline",
    "frame_count",
    # Interpolation
    "Easing",
    "interpolate",
    # Transitions
    "TransitionTransform",
    "resolve_transition",
    "transition_window",
    # Camera
    "CameraTransform",
    "movement_for",
    "resolve_camera",
    # Overlays
    "CaptionTransform",
    "TextStyle",
    "font_size_for",
    "get_style",
    "resolve_caption",
    "add_text_overlay",
    # Waveform
    "WaveformTransform",
    "resolve_waveform",
    "scale_magnitude",
    "smooth_samples",
    # Audio
    "AudioFeatureCache",
    "AudioFeatures",
    "load_audio",
    "load_audio_features",
    # Compositor
    "Composition",
    "CompositionStatus",
    "FrameContext",
    "FramePlan",
    "RenderJob",
    "RenderState",
    "export",
    "to_video_clip",
]
