import math
import numpy as np
import scipy.signal as sps

_EPS = 1e-12


def db_to_lin(db: float) -> float:
    return 10.0 ** (db / 20.0)

def lin_to_db(x: float) -> float:
    return 20.0 * math.log10(max(_EPS, x))

def soft_clip(x: np.ndarray, drive: float = 1.5) -> np.ndarray:
    # Smooth limiter. drive ~ 1.2–2.0
    return np.tanh(drive * x) / np.tanh(drive)


###############################################################################
##                  BIQUAD DESIGNS (RBJ audio EQ cookbook)                   ##
###############################################################################
# All designs return a single second-order section, shape (1, 6), ready for
# scipy.signal.sosfilt. Shelves use slope S = 1.

def _normalize(b0, b1, b2, a0, a1, a2) -> np.ndarray:
    return np.array([[b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0]], dtype=np.float64)


def sos_gain_at(sos: np.ndarray, freq: float, sr: int) -> float:
    """Linear magnitude response of `sos` at `freq` Hz."""
    gain = 1.0
    for section in np.atleast_2d(sos):
        _, h = sps.freqz(section[:3], section[3:], worN=[float(freq)], fs=sr)
        gain *= float(np.abs(h[0]))
    return gain


def _warp(freq: float, sr: int):
    nyq = 0.5 * sr
    freq = max(1.0, min(float(freq), nyq * 0.999))
    w0 = 2.0 * np.pi * freq / sr
    return np.cos(w0), np.sin(w0)


def low_shelf(gain_db: float, freq: float, sr: int) -> np.ndarray:
    A = 10.0 ** (gain_db / 40.0)
    cosw, sinw = _warp(freq, sr)
    alpha = sinw / 2.0 * np.sqrt(2.0)
    sqA = 2.0 * np.sqrt(A) * alpha
    return _normalize(
        A * ((A + 1) - (A - 1) * cosw + sqA),
        2 * A * ((A - 1) - (A + 1) * cosw),
        A * ((A + 1) - (A - 1) * cosw - sqA),
        (A + 1) + (A - 1) * cosw + sqA,
        -2 * ((A - 1) + (A + 1) * cosw),
        (A + 1) + (A - 1) * cosw - sqA,
    )


def high_shelf(gain_db: float, freq: float, sr: int) -> np.ndarray:
    A = 10.0 ** (gain_db / 40.0)
    cosw, sinw = _warp(freq, sr)
    alpha = sinw / 2.0 * np.sqrt(2.0)
    sqA = 2.0 * np.sqrt(A) * alpha
    return _normalize(
        A * ((A + 1) + (A - 1) * cosw + sqA),
        -2 * A * ((A - 1) + (A + 1) * cosw),
        A * ((A + 1) + (A - 1) * cosw - sqA),
        (A + 1) - (A - 1) * cosw + sqA,
        2 * ((A - 1) - (A + 1) * cosw),
        (A + 1) - (A - 1) * cosw - sqA,
    )


def peaking(gain_db: float, freq: float, q: float, sr: int) -> np.ndarray:
    A = 10.0 ** (gain_db / 40.0)
    cosw, sinw = _warp(freq, sr)
    alpha = sinw / (2.0 * max(q, 1e-3))
    return _normalize(
        1 + alpha * A,
        -2 * cosw,
        1 - alpha * A,
        1 + alpha / A,
        -2 * cosw,
        1 - alpha / A,
    )
