import numpy as np
from typing import Sequence

TWO_PI = 2.0 * np.pi


def sine(freq: float, t: np.ndarray) -> np.ndarray:
    """sin(2*pi*f*t) evaluated at the time points `t` (seconds)."""
    return np.sin(TWO_PI * float(freq) * t)


def decaying_chirp(f0: float, rate: float, t: np.ndarray) -> np.ndarray:
    """
    Sine whose frequency falls as f0 * exp(-rate * t).
    The phase is f(t) * t rather than the integral of f, which gives the
    characteristic downward "thump" of the pulse loop.
    """
    freq = float(f0) * np.exp(-float(rate) * t)
    return np.sin(TWO_PI * freq * t)


def harmonic_stack(freq: float, t: np.ndarray, amps: Sequence[float]) -> np.ndarray:
    """
    Sum of partials at h*freq (h = 1..len(amps)) with the given amplitudes.
    Partials are rendered as a (P, N) matrix and summed, no renormalization.
    """
    amps = np.asarray(amps, dtype=np.float64)
    if amps.size == 0:
        return np.zeros_like(t, dtype=np.float64)
    h = np.arange(1, amps.size + 1, dtype=np.float64)
    phi = TWO_PI * float(freq) * h[:, None] * t[None, :]
    return (np.sin(phi) * amps[:, None]).sum(axis=0)


def inverse_harmonic_amps(n_partials: int) -> np.ndarray:
    """1/h amplitudes: a band-limited sawtooth."""
    return 1.0 / np.arange(1, int(n_partials) + 1, dtype=np.float64)
