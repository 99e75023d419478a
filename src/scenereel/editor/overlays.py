"""Caption animation and text overlay rendering."""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from ..config import config
from ..models import (
    CaptionAnimation,
    CaptionFont,
    CaptionSettings,
    FontSize,
    Position,
    StrokeWidth,
)
from .interpolation import Easing, interpolate

logger = logging.getLogger(__name__)

# Share of the scene used by each animation
TYPEWRITER_SPAN = 0.8
ENTRANCE_SPAN = 0.3
BOUNCE_PEAK = 0.15

SLIDE_DISTANCE = 50.0


@dataclass(frozen=True)
class CaptionTransform:
    """Caption state for one frame."""

    text: str
    opacity: float = 1.0
    translate_y: float = 0.0
    scale: float = 1.0


@dataclass(frozen=True)
class TextStyle:
    """Resolved caption styling for one output size."""

    font: CaptionFont = CaptionFont.HELVETICA
    font_size: int = 64
    color: str = "white"
    stroke_color: str = "black"
    stroke_width: int = 1
    shadow_offset: int = 3
    glow_radius: int = 0
    bold: bool = False


# Font sizes in pixels keyed by (orientation, narrow screen)
FONT_SIZES: Dict[Tuple[str, bool], Dict[FontSize, int]] = {
    ("portrait", True): {
        FontSize.SMALL: 24, FontSize.MEDIUM: 32, FontSize.LARGE: 40, FontSize.XLARGE: 48,
    },
    ("portrait", False): {
        FontSize.SMALL: 36, FontSize.MEDIUM: 48, FontSize.LARGE: 60, FontSize.XLARGE: 72,
    },
    ("landscape", True): {
        FontSize.SMALL: 32, FontSize.MEDIUM: 42, FontSize.LARGE: 52, FontSize.XLARGE: 64,
    },
    ("landscape", False): {
        FontSize.SMALL: 48, FontSize.MEDIUM: 64, FontSize.LARGE: 80, FontSize.XLARGE: 96,
    },
}

# (shadow offset, outline width, glow radius, bold)
STROKES: Dict[StrokeWidth, Tuple[int, int, int, bool]] = {
    StrokeWidth.THIN: (2, 1, 0, False),
    StrokeWidth.MEDIUM: (3, 1, 0, False),
    StrokeWidth.THICK: (4, 2, 0, False),
    StrokeWidth.BOLD: (5, 2, 10, True),
}

# TrueType candidates per caption font, regular and bold
FONT_FILES: Dict[CaptionFont, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    CaptionFont.HELVETICA: (
        ("Helvetica.ttf", "Arial.ttf", "LiberationSans-Regular.ttf", "DejaVuSans.ttf"),
        ("Helvetica-Bold.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf", "DejaVuSans-Bold.ttf"),
    ),
    CaptionFont.SERIF: (
        ("Times New Roman.ttf", "LiberationSerif-Regular.ttf", "DejaVuSerif.ttf"),
        ("Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf", "DejaVuSerif-Bold.ttf"),
    ),
    CaptionFont.BRUSH: (
        ("Brush Script.ttf", "BrushScriptMT.ttf", "DejaVuSans.ttf"),
        ("Brush Script.ttf", "BrushScriptMT.ttf", "DejaVuSans-Bold.ttf"),
    ),
    CaptionFont.MONOSPACE: (
        ("Courier New.ttf", "LiberationMono-Regular.ttf", "DejaVuSansMono.ttf"),
        ("Courier New Bold.ttf", "LiberationMono-Bold.ttf", "DejaVuSansMono-Bold.ttf"),
    ),
}

# Padding between the caption block and the frame edge
EDGE_PADDING: Dict[Position, int] = {
    Position.TOP: 64,
    Position.CENTER: 0,
    Position.MID_BOTTOM: 128,
    Position.BOTTOM: 64,
}

MAX_WIDTH_SHARE = 0.85
SIDE_PADDING = 32
LINE_HEIGHT = 1.25


def font_size_for(width: int, height: int, size: FontSize) -> int:
    """Look up the caption font size for an output resolution."""
    if height > width:
        key = ("portrait", width < 500)
    else:
        key = ("landscape", width < 1000)
    return FONT_SIZES[key].get(size, FONT_SIZES[key][FontSize.MEDIUM])


def get_style(captions: CaptionSettings, width: int, height: int) -> TextStyle:
    """Resolve caption settings into a concrete style for the output size."""
    shadow, outline, glow, bold = STROKES.get(
        captions.stroke_width, STROKES[StrokeWidth.MEDIUM]
    )
    return TextStyle(
        font=captions.font,
        font_size=font_size_for(width, height, captions.font_size),
        stroke_width=outline,
        shadow_offset=shadow,
        glow_radius=glow,
        bold=bold,
    )


def _static(frame: float, total: int, text: str) -> CaptionTransform:
    return CaptionTransform(text=text)


def _typewriter(frame: float, total: int, text: str) -> CaptionTransform:
    progress = interpolate(frame, [0, total * TYPEWRITER_SPAN], [0, len(text)])
    visible = min(len(text), int(math.floor(progress)))
    return CaptionTransform(text=text[:visible])


def _fade_in(frame: float, total: int, text: str) -> CaptionTransform:
    return CaptionTransform(
        text=text,
        opacity=interpolate(frame, [0, total * ENTRANCE_SPAN], [0, 1]),
    )


def _slide_up(frame: float, total: int, text: str) -> CaptionTransform:
    span = total * ENTRANCE_SPAN
    return CaptionTransform(
        text=text,
        opacity=interpolate(frame, [0, span], [0, 1]),
        translate_y=interpolate(frame, [0, span], [SLIDE_DISTANCE, 0]),
    )


def _bounce(frame: float, total: int, text: str) -> CaptionTransform:
    peak = total * BOUNCE_PEAK
    span = total * ENTRANCE_SPAN
    scale = interpolate(frame, [0, peak, span], [0.5, 1.1, 1], Easing.bounce)
    opacity = interpolate(frame, [0, peak], [0, 1]) if frame < span else 1.0
    return CaptionTransform(text=text, opacity=opacity, scale=scale)


ANIMATIONS: Dict[CaptionAnimation, Callable[[float, int, str], CaptionTransform]] = {
    CaptionAnimation.NONE: _static,
    CaptionAnimation.TYPEWRITER: _typewriter,
    CaptionAnimation.FADE_IN: _fade_in,
    CaptionAnimation.SLIDE_UP: _slide_up,
    CaptionAnimation.BOUNCE: _bounce,
}


def resolve_caption(
    local_frame: int,
    frame_count: int,
    text: str,
    animation: CaptionAnimation,
) -> CaptionTransform:
    """Caption state at ``local_frame`` of a scene lasting ``frame_count`` frames."""
    return ANIMATIONS.get(animation, _static)(local_frame, frame_count, text)


@lru_cache(maxsize=64)
def load_font(font: CaptionFont, size: int, bold: bool = False) -> ImageFont.ImageFont:
    """Load a TrueType font for captions, falling back to Pillow's default."""
    regular, heavy = FONT_FILES.get(font, FONT_FILES[CaptionFont.HELVETICA])
    candidates = heavy if bold else regular

    for name in candidates:
        paths = [config.font_dir / name, name] if config.font_dir else [name]
        for path in paths:
            try:
                return ImageFont.truetype(str(path), size)
            except OSError:
                continue

    logger.warning(f"No TrueType font found for {font.value}, using default font")
    return ImageFont.load_default(size=size)


def wrap_text(
    text: str,
    font: ImageFont.ImageFont,
    max_width: float,
) -> List[str]:
    """Break ``text`` into lines no wider than ``max_width`` where possible."""
    measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    lines: List[str] = []

    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if current and measure.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)

    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def render_text(text: str, style: TextStyle, max_width: float) -> Optional[Image.Image]:
    """Render a centred caption block on a transparent RGBA image.

    Args:
        text: Caption text to render.
        style: Resolved caption style.
        max_width: Maximum line width in pixels before wrapping.

    Returns:
        The caption block, or None when there is nothing visible to draw.
    """
    font = load_font(style.font, style.font_size, style.bold)
    lines = wrap_text(text, font, max_width)
    if not lines:
        return None

    measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    line_height = int(round(style.font_size * LINE_HEIGHT))
    line_widths = [
        measure.textlength(line, font=font) + 2 * style.stroke_width for line in lines
    ]
    pad = style.shadow_offset + style.stroke_width + style.glow_radius * 2
    block_w = int(math.ceil(max(line_widths))) + 2 * pad
    block_h = line_height * len(lines) + 2 * pad

    shadow = Image.new("RGBA", (block_w, block_h), (0, 0, 0, 0))
    block = Image.new("RGBA", (block_w, block_h), (0, 0, 0, 0))
    shadow_draw = ImageDraw.Draw(shadow)
    text_draw = ImageDraw.Draw(block)

    for i, (line, line_w) in enumerate(zip(lines, line_widths)):
        x = (block_w - line_w) / 2 + style.stroke_width
        y = pad + i * line_height
        shadow_draw.text(
            (x + style.shadow_offset, y + style.shadow_offset),
            line,
            font=font,
            fill=style.stroke_color,
        )
        text_draw.text(
            (x, y),
            line,
            font=font,
            fill=style.color,
            stroke_width=style.stroke_width,
            stroke_fill=style.stroke_color,
        )

    if style.glow_radius:
        shadow = Image.alpha_composite(
            shadow.filter(ImageFilter.GaussianBlur(style.glow_radius)), shadow
        )
    return Image.alpha_composite(shadow, block)


def _apply_opacity(layer: Image.Image, opacity: float) -> Image.Image:
    if opacity >= 1.0:
        return layer
    alpha = layer.getchannel("A").point(lambda value: int(round(value * max(0.0, opacity))))
    layer = layer.copy()
    layer.putalpha(alpha)
    return layer


def position_overlay(
    block_height: int,
    position: Position,
    frame_height: int,
) -> float:
    """Top edge of an unscaled caption block for a caption position."""
    padding = EDGE_PADDING.get(position, EDGE_PADDING[Position.BOTTOM])
    if position == Position.TOP:
        return float(padding)
    if position == Position.CENTER:
        return (frame_height - block_height) / 2
    return float(frame_height - padding - block_height)


def add_text_overlay(
    canvas: Image.Image,
    caption: CaptionTransform,
    style: TextStyle,
    position: Position,
) -> Image.Image:
    """Composite an animated caption onto an RGB frame in place.

    Args:
        canvas: RGB frame to draw on.
        caption: Caption state for the current frame.
        style: Resolved caption style.
        position: Vertical caption anchor.

    Returns:
        The same canvas, for chaining.
    """
    if caption.opacity <= 0 or not caption.text:
        return canvas

    width, height = canvas.size
    max_width = min(width * MAX_WIDTH_SHARE, width - 2 * SIDE_PADDING)
    block = render_text(caption.text, style, max_width)
    if block is None:
        return canvas

    top = position_overlay(block.height, position, height)
    centre_x = width / 2
    centre_y = top + block.height / 2 + caption.translate_y

    if caption.scale != 1.0:
        scaled = (
            max(1, int(round(block.width * caption.scale))),
            max(1, int(round(block.height * caption.scale))),
        )
        block = block.resize(scaled, Image.Resampling.LANCZOS)

    block = _apply_opacity(block, caption.opacity)
    origin = (
        int(round(centre_x - block.width / 2)),
        int(round(centre_y - block.height / 2)),
    )
    canvas.paste(block, origin, block)
    return canvas
