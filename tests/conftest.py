"""Shared fixtures for scene reel tests."""

from pathlib import Path
from typing import Callable, Optional

import pytest
from PIL import Image

from scenereel.models import Scene


@pytest.fixture
def make_scene() -> Callable[..., Scene]:
    """Factory for scenes with sensible defaults."""

    def factory(
        order_index: int,
        duration: Optional[float] = 3.0,
        text: str = "The quick brown fox jumps over the lazy dog",
        media_ref: Optional[str] = None,
        audio_ref: Optional[str] = None,
        **extra,
    ) -> Scene:
        return Scene(
            id=extra.pop("id", f"scene_{order_index}"),
            order_index=order_index,
            duration_seconds=duration,
            text=text,
            media_ref=media_ref,
            audio_ref=audio_ref,
            **extra,
        )

    return factory


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """A small gradient image to use as scene media."""
    image = Image.new("RGB", (160, 90))
    pixels = image.load()
    for x in range(160):
        for y in range(90):
            pixels[x, y] = (x % 256, (y * 2) % 256, 128)
    path = tmp_path / "background.png"
    image.save(path)
    return path
