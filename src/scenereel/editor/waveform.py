"""Audio-reactive waveform bars."""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw

from ..models import AudioWaveSettings, Position

logger = logging.getLogger(__name__)

BAR_COUNT = 100
NOISE_GATE = 0.015
MIN_BAR_HEIGHT = 3.0
BASE_BAR_HEIGHT = 50.0
BAR_GAIN = 200.0
MIRROR_SCALE = -0.7

ROW_WIDTH_SHARE = 0.9
BAR_GAP = 3
MAX_BAR_WIDTH = 6
BAR_RADIUS = 3
BAR_OPACITY = 0.85
DEFAULT_COLOR = "#ffffff"


@dataclass(frozen=True)
class WaveformTransform:
    """Bars to draw for one frame.

    ``bars`` holds ``(height, scale_y)`` pairs; ``edge`` and ``offset`` place
    the row relative to the top or bottom of the frame.
    """

    bars: Tuple[Tuple[float, float], ...]
    edge: str
    offset: float
    color: str = DEFAULT_COLOR


def smooth_samples(values: Sequence[float]) -> Tuple[float, ...]:
    """Five-point moving average; missing neighbours reuse the nearest sample."""
    n = len(values)
    smoothed = []
    for i, value in enumerate(values):
        prev = values[i - 1] if i - 1 >= 0 else value
        nxt = values[i + 1] if i + 1 < n else value
        prev2 = values[i - 2] if i - 2 >= 0 else prev
        next2 = values[i + 2] if i + 2 < n else nxt
        smoothed.append((prev2 + prev + value + nxt + next2) / 5)
    return tuple(smoothed)


def scale_magnitude(value: float) -> float:
    """Logarithmic, noise-gated scale of a magnitude into [0, 1]."""
    if value < NOISE_GATE:
        return 0.0
    return min(1.0, math.log10(1 + value * 80) / 2.2)


def bar_height(value: float) -> float:
    return max(MIN_BAR_HEIGHT, BASE_BAR_HEIGHT + scale_magnitude(value) * BAR_GAIN)


def anchor_for(position: Position, frame_height: int) -> Tuple[str, float]:
    """Which frame edge the bar row hangs from, and how far from it."""
    if position == Position.TOP:
        return "top", 100.0
    if position == Position.MID_BOTTOM:
        return "bottom", frame_height * 0.25
    if position == Position.CENTER:
        return "bottom", frame_height * 0.5
    return "bottom", 80.0


def resolve_waveform(
    spectrum: Sequence[float],
    settings: AudioWaveSettings,
    frame_height: int,
) -> WaveformTransform:
    """Turn one frame's frequency magnitudes into bar geometry."""
    smoothed = smooth_samples(list(spectrum))
    bars = tuple(
        (bar_height(value), 1.0 if i % 2 == 0 else MIRROR_SCALE)
        for i, value in enumerate(smoothed[:BAR_COUNT])
    )
    edge, offset = anchor_for(settings.position, frame_height)
    return WaveformTransform(bars=bars, edge=edge, offset=offset, color=settings.color)


def _parse_color(color: str) -> Tuple[int, int, int]:
    try:
        return ImageColor.getrgb(color)[:3]
    except ValueError:
        logger.warning(f"Unknown waveform color {color!r}, using {DEFAULT_COLOR}")
        return ImageColor.getrgb(DEFAULT_COLOR)[:3]


def draw_waveform(canvas: Image.Image, wave: WaveformTransform) -> Image.Image:
    """Composite waveform bars onto an RGB frame in place."""
    if not wave.bars:
        return canvas

    width, height = canvas.size
    count = len(wave.bars)
    row_width = width * ROW_WIDTH_SHARE
    bar_width = min(MAX_BAR_WIDTH, max(1.0, (row_width - BAR_GAP * (count - 1)) / count))
    used = bar_width * count + BAR_GAP * (count - 1)
    left = (width - used) / 2

    tallest = max(h for h, _ in wave.bars)
    if wave.edge == "top":
        centre_y = wave.offset + tallest / 2
    else:
        centre_y = height - wave.offset - tallest / 2

    red, green, blue = _parse_color(wave.color)
    fill = (red, green, blue, int(round(255 * BAR_OPACITY)))

    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    for i, (bar_h, scale_y) in enumerate(wave.bars):
        visible = bar_h * abs(scale_y)
        x0 = left + i * (bar_width + BAR_GAP)
        y0 = centre_y - visible / 2
        draw.rounded_rectangle(
            [x0, y0, x0 + bar_width, y0 + visible],
            radius=min(BAR_RADIUS, bar_width / 2),
            fill=fill,
        )

    canvas.paste(layer, (0, 0), layer)
    return canvas
