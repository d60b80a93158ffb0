import numpy as np

# Closed-form envelopes: every function maps local time (or a local time
# fraction) to an amplitude in [0, 1]. No state, so a loop can be rendered
# in a single vectorized pass.


def exp_decay(t: np.ndarray, rate: float) -> np.ndarray:
    return np.exp(-float(rate) * t)


def attack_decay(t: np.ndarray, attack_rate: float, decay_rate: float) -> np.ndarray:
    """
    exp(-decay*t) * (1 - exp(-attack*t)).
    Starts at 0, rises quickly and then decays; never reaches 1.
    """
    return np.exp(-float(decay_rate) * t) * (1.0 - np.exp(-float(attack_rate) * t))


def half_sine(frac: np.ndarray) -> np.ndarray:
    """sin(pi * frac): 0 at both ends of the note, 1 in the middle."""
    return np.sin(np.pi * frac)
