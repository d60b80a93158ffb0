import threading
import math
from dataclasses import dataclass

from audio.dsp import lin_to_db


@dataclass(frozen=True)
class MeterSnapshot:
    peak_pre: float
    peak_post: float
    rms: float
    limited_blocks: int
    frames: int

    @property
    def peak_pre_db(self) -> float:
        return lin_to_db(self.peak_pre)

    @property
    def peak_post_db(self) -> float:
        return lin_to_db(self.peak_post)

    @property
    def rms_db(self) -> float:
        return lin_to_db(self.rms)


class AudioMeter:
    """
    Output meter over a rolling window.
    update() runs in the audio callback, snapshot_and_reset() in the logger
    thread; both go through the same lock.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._reset_locked()

    def _reset_locked(self):
        self._frames = 0
        self._sum_sq = 0.0
        self._peak_pre = 0.0
        self._peak_post = 0.0
        self._limited = 0

    def update(self, pre_peak: float, post_peak: float, block_rms: float, limited: bool, frames: int):
        with self._lock:
            self._frames += frames
            self._sum_sq += (block_rms * block_rms) * frames
            self._peak_pre = max(self._peak_pre, pre_peak)
            self._peak_post = max(self._peak_post, post_peak)
            if limited:
                self._limited += 1

    def snapshot_and_reset(self) -> MeterSnapshot:
        with self._lock:
            rms = math.sqrt(self._sum_sq / self._frames) if self._frames > 0 else 0.0
            snap = MeterSnapshot(peak_pre=self._peak_pre, peak_post=self._peak_post, rms=rms,
                                 limited_blocks=self._limited, frames=self._frames)
            self._reset_locked()
            return snap
