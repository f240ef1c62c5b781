"""Audio normalization shared by live capture and file import.

Both paths end in :func:`to_canonical`, so a dictated passage and an imported
file reach the engine through the same downmix and resampling steps.
"""

from __future__ import annotations

import numpy as np

from models import TARGET_SAMPLE_RATE, CanonicalAudioBuffer


def downmix(frames: np.ndarray) -> np.ndarray:
    """Average interleaved channels into one float32 channel.

    ``frames`` is either 1-D (already mono) or shaped ``(n_frames, n_channels)``.
    """
    data = np.asarray(frames, dtype=np.float32)
    if data.ndim == 1:
        return data
    if data.shape[1] == 1:
        return data[:, 0].copy()
    return data.mean(axis=1, dtype=np.float64).astype(np.float32)


def resample_linear(samples: np.ndarray, from_rate: int, to_rate: int = TARGET_SAMPLE_RATE) -> np.ndarray:
    """Resample mono audio by linear interpolation.

    Output length is ``floor(len(samples) * to_rate / from_rate)``. Output
    sample ``i`` sits at source position ``i * from_rate / to_rate``; the last
    source sample is held when there is no right neighbour.
    """
    data = np.asarray(samples, dtype=np.float32)
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"sample rates must be positive, got {from_rate} -> {to_rate}")
    if from_rate == to_rate or data.size == 0:
        return data.copy()

    ratio = from_rate / to_rate
    new_len = int(data.size / ratio)
    if new_len == 0:
        return np.zeros(0, dtype=np.float32)

    positions = np.arange(new_len, dtype=np.float64) * ratio
    idx = positions.astype(np.int64)
    frac = positions - idx
    nxt = np.minimum(idx + 1, data.size - 1)
    left = data[idx].astype(np.float64)
    right = data[nxt].astype(np.float64)
    return (left * (1.0 - frac) + right * frac).astype(np.float32)


def to_canonical(frames: np.ndarray, sample_rate: int, truncated: bool = False) -> CanonicalAudioBuffer:
    mono = downmix(frames)
    return CanonicalAudioBuffer(
        samples=resample_linear(mono, sample_rate, TARGET_SAMPLE_RATE),
        truncated=truncated,
    )
