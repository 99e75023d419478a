"""Background media: loading, cover fitting and camera transforms."""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
from moviepy import VideoFileClip
from PIL import Image, ImageOps, UnidentifiedImageError

from ..models import Scene
from ..services.assets import AssetError, AssetFetcher
from .camera import CameraTransform

logger = logging.getLogger(__name__)


def crop_to_aspect(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale and centre-crop ``image`` so it covers a ``width`` x ``height`` frame."""
    if image.size == (width, height):
        return image
    return ImageOps.fit(image, (width, height), method=Image.Resampling.LANCZOS)


def apply_camera(image: Image.Image, camera: CameraTransform) -> Image.Image:
    """Apply ``scale(s) translate(tx, ty)`` about the image centre.

    Args:
        image: Frame-sized background.
        camera: Camera transform for the current frame.

    Returns:
        A new image of the same size.
    """
    if camera.scale == 1.0 and camera.translate_x == 0 and camera.translate_y == 0:
        return image

    width, height = image.size
    inv = 1.0 / camera.scale
    # Output pixel q samples input pixel (q - centre) / s + centre - t
    offset_x = width / 2 * (1 - inv) - camera.translate_x
    offset_y = height / 2 * (1 - inv) - camera.translate_y
    return image.transform(
        image.size,
        Image.Transform.AFFINE,
        (inv, 0, offset_x, 0, inv, offset_y),
        resample=Image.Resampling.BICUBIC,
    )


class StillImage:
    """An image background, cover-fitted once at load time."""

    def __init__(self, path: Path, size: Tuple[int, int]) -> None:
        with Image.open(path) as image:
            self._image = crop_to_aspect(image.convert("RGB"), *size)

    def frame_at(self, seconds: float) -> Image.Image:
        return self._image

    def close(self) -> None:
        pass


class VideoSource:
    """A looping, muted video background."""

    def __init__(self, path: Path, size: Tuple[int, int]) -> None:
        self._clip = VideoFileClip(str(path), audio=False)
        self._size = size
        self._lock = threading.Lock()
        if not self._clip.duration:
            self._clip.close()
            raise ValueError(f"Video has no duration: {path}")

    def frame_at(self, seconds: float) -> Image.Image:
        t = seconds % self._clip.duration
        with self._lock:
            frame = self._clip.get_frame(t)
        image = Image.fromarray(np.asarray(frame, dtype=np.uint8)).convert("RGB")
        return crop_to_aspect(image, *self._size)

    def close(self) -> None:
        self._clip.close()


MediaSource = Union[StillImage, VideoSource]


class MediaLibrary:
    """Loads and caches backgrounds per media reference for a render job."""

    def __init__(self, fetcher: AssetFetcher, size: Tuple[int, int]) -> None:
        self._fetcher = fetcher
        self._size = size
        self._sources: Dict[str, MediaSource] = {}
        self._lock = threading.Lock()

    def load(self, scene: Scene) -> Optional[MediaSource]:
        """Return the background for ``scene``, or None when it has no media yet.

        Raises:
            AssetError: If the asset cannot be fetched or decoded.
        """
        if not scene.media_ref:
            return None

        with self._lock:
            cached = self._sources.get(scene.media_ref)
            if cached is not None:
                return cached

            path = self._fetcher.resolve(scene.media_ref)
            try:
                if scene.is_video:
                    source: MediaSource = VideoSource(path, self._size)
                else:
                    source = StillImage(path, self._size)
            except (OSError, ValueError, UnidentifiedImageError) as e:
                raise AssetError(scene.media_ref, str(e)) from e

            logger.debug(f"Loaded {type(source).__name__} for scene {scene.id}")
            self._sources[scene.media_ref] = source
            return source

    def close(self) -> None:
        with self._lock:
            for source in self._sources.values():
                source.close()
            self._sources.clear()
