from __future__ import annotations
from dataclasses import dataclass, field
import math
import numpy as np


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """
    Immutable mono sample buffer.
    The sample array is made read-only on construction so the same buffer
    can be loaded on both decks at once.
    """
    sample_rate: int
    data: np.ndarray = field(repr=False)
    channels: int = 1

    def __post_init__(self):
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.channels != 1:
            raise ValueError("Only mono buffers are supported.")
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim != 1:
            raise ValueError("Buffer data must be one-dimensional.")
        data.setflags(write=False)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))
        object.__setattr__(self, "data", data)

    @property
    def frames(self) -> int:
        return int(self.data.shape[0])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def __len__(self) -> int:
        return self.frames


def waveform_peaks(buffer: AudioBuffer, width: int) -> np.ndarray:
    """
    Column-wise (min, max) pairs for drawing a waveform `width` pixels wide.
    Each column covers ceil(len / width) samples; trailing columns past the
    end of the buffer come back as (0, 0).
    """
    width = int(width)
    if width <= 0:
        raise ValueError("width must be positive")
    peaks = np.zeros((width, 2), dtype=np.float32)
    n = buffer.frames
    if n == 0:
        return peaks

    step = math.ceil(n / width)
    padded = np.full(step * width, np.nan, dtype=np.float32)
    padded[:n] = buffer.data
    cols = padded.reshape(width, step)

    filled = ~np.all(np.isnan(cols), axis=1)
    peaks[filled, 0] = np.nanmin(cols[filled], axis=1)
    peaks[filled, 1] = np.nanmax(cols[filled], axis=1)
    return peaks
