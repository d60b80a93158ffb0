import threading

# Every elapsed-time computation goes through the audio clock, which only
# moves when the audio side has rendered frames. The render cadence of the
# display never enters the math.


class AudioClock:
    """
    Monotonic clock driven by rendered frames.
    The audio thread advances it once per block; any thread may read it.
    """
    def __init__(self, sample_rate: int = 44100):
        if int(sample_rate) <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self._frames = 0
        self._lock = threading.Lock()

    @property
    def frames(self) -> int:
        with self._lock:
            return self._frames

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames / self.sample_rate

    def advance(self, frames: int) -> None:
        if frames < 0:
            raise ValueError("The audio clock cannot run backwards.")
        with self._lock:
            self._frames += int(frames)

    def advance_seconds(self, seconds: float) -> None:
        self.advance(int(round(seconds * self.sample_rate)))


def elapsed_position(now: float, start: float, rate: float) -> float:
    """Seconds of material played since `start` at playback `rate`."""
    return (now - start) * rate


def wrap_position(position: float, duration: float) -> float:
    """Fold a linear position into [0, duration)."""
    if duration <= 0:
        return 0.0
    return position % duration


def epoch_start(now: float, offset: float, rate: float) -> float:
    """
    Clock time at which playback would have had to start, at `rate`, to be
    at `offset` now. Keeps elapsed_position continuous across resume and
    rate changes.
    """
    return now - offset / rate
