import threading
import numpy as np

FFT_SIZE = 256
SMOOTHING = 0.8
MIN_DB = -100.0
MAX_DB = -30.0


class Analyser:
    """
    Frequency-magnitude tap on the master signal.
    The audio thread feeds blocks with write(); the display pulls a fresh
    byte snapshot with byte_frequency_data() once per frame.
    Magnitudes are Blackman-windowed, scaled by 1/N, smoothed over time and
    mapped from [min_db, max_db] to 0..255.
    """
    def __init__(self, fft_size: int = FFT_SIZE, smoothing: float = SMOOTHING,
                 min_db: float = MIN_DB, max_db: float = MAX_DB):
        fft_size = int(fft_size)
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if min_db >= max_db:
            raise ValueError("min_db must be below max_db")

        self.fft_size = fft_size
        self.smoothing = float(smoothing)
        self.min_db = float(min_db)
        self.max_db = float(max_db)

        self._window = np.blackman(fft_size)
        self._ring = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)
        self._lock = threading.Lock()

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def write(self, block: np.ndarray) -> None:
        # Called from the audio callback
        block = np.asarray(block, dtype=np.float32).reshape(-1)
        n = block.shape[0]
        if n == 0:
            return
        with self._lock:
            if n >= self.fft_size:
                self._ring[:] = block[-self.fft_size:]
            else:
                self._ring[:-n] = self._ring[n:]
                self._ring[-n:] = block

    def float_frequency_data(self) -> np.ndarray:
        """Smoothed magnitudes in dB, one per bin."""
        with self._lock:
            frame = self._ring.astype(np.float64)

        spec = np.abs(np.fft.rfft(frame * self._window))[:self.bin_count] / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * spec
        return 20.0 * np.log10(np.maximum(self._smoothed, 1e-12))

    def byte_frequency_data(self) -> np.ndarray:
        db = self.float_frequency_data()
        scaled = np.floor(255.0 / (self.max_db - self.min_db) * (db - self.min_db))
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def bin_frequency(self, index: int, sample_rate: int) -> float:
        return index * sample_rate / self.fft_size
