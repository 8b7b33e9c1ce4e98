import logging
from typing import Sequence

import numpy as np

from .models import AudioClip

log = logging.getLogger(__name__)


def silence(duration_s: float, sample_rate: int, channels: int = 2) -> AudioClip:
    n = int(round(duration_s * sample_rate))
    return AudioClip(np.zeros((n, channels), dtype=np.float32), sample_rate)


def to_stereo(samples: np.ndarray) -> np.ndarray:
    """Mono is duplicated, anything wider than stereo keeps its first two channels."""
    if samples.ndim == 1:
        samples = samples[:, None]
    if samples.shape[1] == 1:
        return np.repeat(samples, 2, axis=1)
    return samples[:, :2]


def fit_to_duration(clip: AudioClip, duration_s: float) -> AudioClip:
    """Truncate or zero-pad a clip to exactly `duration_s`."""
    n = int(round(duration_s * clip.sample_rate))
    have = len(clip.samples)
    if have >= n:
        return AudioClip(clip.samples[:n], clip.sample_rate)
    pad = np.zeros((n - have, clip.channels), dtype=clip.samples.dtype)
    return AudioClip(np.concatenate([clip.samples, pad]), clip.sample_rate)


def assemble_clips(clips: Sequence[AudioClip], target_s: float, sample_rate: int) -> np.ndarray:
    """Concatenate clips in order into one stereo (frames, 2) float32 buffer.

    The buffer holds min(sum of clip lengths, target_s) worth of frames; a
    clip crossing the end is cut and later clips are dropped. With no clips
    at all the result is `target_s` of silence.
    """
    limit = int(round(target_s * sample_rate))
    if not clips:
        return np.zeros((limit, 2), dtype=np.float32)

    for c in clips:
        if c.sample_rate != sample_rate:
            raise ValueError(f"clip at {c.sample_rate} Hz, expected {sample_rate} Hz")

    total = min(sum(len(c) for c in clips), limit)
    out = np.zeros((total, 2), dtype=np.float32)

    offset = 0
    for i, c in enumerate(clips):
        if offset >= total:
            log.debug("audio buffer full, dropping %d trailing clip(s)", len(clips) - i)
            break
        n = min(len(c), total - offset)
        out[offset:offset + n] = to_stereo(c.samples)[:n]
        offset += n
    return out
