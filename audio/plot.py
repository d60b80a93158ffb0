import matplotlib.pyplot as plt
import numpy as np

from audio.buffer import AudioBuffer


def plot_buffer(buffer: AudioBuffer, position: float = None, title: str = None):
    """Plot a loop, optionally with a playhead at `position` seconds."""
    t = np.arange(buffer.frames) / buffer.sample_rate
    fig, ax = plt.subplots(figsize=(8, 3))
    ax.plot(t, buffer.data, lw=0.8)
    if position is not None:
        ax.axvline(position, color="k", lw=1.5)
    ax.set_xlim(0.0, max(buffer.duration, 1e-9))
    ax.set_ylim(-1.05, 1.05)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel("Amplitude")
    ax.set_title(title or f"Loop ({buffer.duration:.3f}s @ {buffer.sample_rate}Hz)")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig, ax


def plot_spectrum(snapshot: np.ndarray, sample_rate: int, fft_size: int = None):
    """Bar plot of an analysis snapshot (byte magnitudes per bin)."""
    snapshot = np.asarray(snapshot)
    fft_size = fft_size or 2 * snapshot.size
    freqs = np.arange(snapshot.size) * sample_rate / fft_size
    fig, ax = plt.subplots(figsize=(8, 3))
    ax.bar(freqs, snapshot, width=sample_rate / fft_size, align="edge")
    ax.set_ylim(0, 255)
    ax.set_xlabel("Frequency [Hz]")
    ax.set_ylabel("Level")
    ax.set_title("Master spectrum")
    fig.tight_layout()
    return fig, ax
