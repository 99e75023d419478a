"""Narration audio: feature extraction for the waveform and track assembly."""

import logging
import math
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from moviepy import AudioFileClip, CompositeAudioClip

from ..config import FPS

logger = logging.getLogger(__name__)

NUMBER_OF_SAMPLES = 512


def load_audio(audio_path: Path) -> AudioFileClip:
    """Load an audio file.

    Args:
        audio_path: Path to the audio file.

    Returns:
        AudioFileClip instance.

    Raises:
        FileNotFoundError: If audio file doesn't exist.
    """
    if not audio_path.exists():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    return AudioFileClip(str(audio_path))


@dataclass(frozen=True, eq=False)
class AudioFeatures:
    """Per-frame frequency magnitudes of one narration track.

    ``frames[f]`` holds ``NUMBER_OF_SAMPLES`` magnitudes for local frame
    ``f``; frames past the end of the audio are silent.
    """

    frames: np.ndarray
    sample_rate: int
    fps: int = FPS

    @property
    def frame_count(self) -> int:
        return int(self.frames.shape[0])

    @property
    def bins(self) -> int:
        return int(self.frames.shape[1])

    def spectrum(self, frame: int) -> np.ndarray:
        """Magnitudes for ``frame``; zeros outside the audio."""
        if 0 <= frame < self.frame_count:
            return self.frames[frame]
        return np.zeros(self.bins)

    @classmethod
    def from_samples(
        cls,
        samples: np.ndarray,
        sample_rate: int,
        fps: int = FPS,
        number_of_samples: int = NUMBER_OF_SAMPLES,
        smoothing: bool = True,
    ) -> "AudioFeatures":
        """Analyse a decoded buffer.

        Args:
            samples: Array of shape ``(n,)`` or ``(n, channels)``; the first
                channel is analysed.
            sample_rate: Samples per second of the buffer.
            fps: Video frame rate the features are sampled at.
            number_of_samples: Frequency bins per frame.
            smoothing: Average each frame with its neighbours.

        Returns:
            Features covering the full length of the buffer.
        """
        data = np.asarray(samples, dtype=np.float64)
        if data.ndim > 1:
            data = data[:, 0]

        peak = float(np.max(np.abs(data))) if data.size else 0.0
        if peak > 0:
            data = data / peak

        count = int(math.ceil(data.size / sample_rate * fps)) if data.size else 0
        size = number_of_samples * 2
        window = 0.54 - 0.46 * np.cos(2 * np.pi * np.arange(size) / (size - 1))

        def raw(frame: int) -> np.ndarray:
            start = int(math.floor(frame / fps * sample_rate))
            start = max(0, start - size // 4)
            chunk = data[start:start + size]
            if chunk.size < size:
                chunk = np.pad(chunk, (0, size - chunk.size))
            magnitudes = np.abs(np.fft.rfft(chunk * window))[:number_of_samples]
            return magnitudes / number_of_samples

        if count == 0:
            return cls(frames=np.zeros((0, number_of_samples)), sample_rate=sample_rate, fps=fps)

        spectra = np.stack([raw(frame) for frame in range(-1, count + 1)])
        if smoothing:
            frames = (spectra[:-2] + spectra[1:-1] + spectra[2:]) / 3
        else:
            frames = spectra[1:-1]

        return cls(frames=frames, sample_rate=sample_rate, fps=fps)


def load_audio_features(audio_path: Path, fps: int = FPS) -> AudioFeatures:
    """Decode a narration file and extract its per-frame features."""
    audio = load_audio(audio_path)
    try:
        sample_rate = int(audio.fps)
        samples = audio.to_soundarray(fps=sample_rate)
    finally:
        audio.close()

    features = AudioFeatures.from_samples(samples, sample_rate, fps=fps)
    logger.debug(f"Extracted {features.frame_count} audio frames from {audio_path}")
    return features


class AudioFeatureCache:
    """Memoizes audio features per audio reference for one render job."""

    def __init__(self) -> None:
        self._features: Dict[str, AudioFeatures] = {}
        self._lock = threading.Lock()

    def __contains__(self, audio_ref: str) -> bool:
        return audio_ref in self._features

    def __len__(self) -> int:
        return len(self._features)

    def get(
        self,
        audio_ref: str,
        loader: Callable[[str], AudioFeatures],
    ) -> AudioFeatures:
        """Return cached features for ``audio_ref``, loading them on first use."""
        with self._lock:
            cached = self._features.get(audio_ref)
            if cached is None:
                cached = loader(audio_ref)
                self._features[audio_ref] = cached
            return cached


def build_narration(
    tracks: List[Tuple[Path, float, float]],
) -> Optional[CompositeAudioClip]:
    """Place narration clips on the global timeline.

    Args:
        tracks: ``(audio_path, start_seconds, max_duration)`` per scene.

    Returns:
        Composite of all narration clips, or None when no scene has audio.
    """
    clips = []
    for audio_path, start, max_duration in tracks:
        try:
            audio = load_audio(audio_path)
        except (FileNotFoundError, OSError) as e:
            logger.warning(f"Omitting narration {audio_path}: {e}")
            continue
        if audio.duration > max_duration:
            audio = audio.subclipped(0, max_duration)
        clips.append(audio.with_start(start))

    if not clips:
        return None
    return CompositeAudioClip(clips)


def close_narration(narration: CompositeAudioClip) -> None:
    """Release the audio files opened by ``build_narration``."""
    for clip in narration.clips:
        clip.close()
    narration.close()
