"""
Procedural loop synthesizer.

Every loop splits its length into N equal slots (beats or notes) and writes a
closed-form value per sample. Slot n starts at floor(n * length / N); samples
that would land past the end of the buffer are dropped and a later slot
overwrites an earlier one where they overlap.
"""
import math
import logging
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

import numpy as np

from audio.buffer import AudioBuffer
from loops.envelopes import attack_decay, exp_decay, half_sine
from loops.signals import decaying_chirp, harmonic_stack, inverse_harmonic_amps, sine

logger = logging.getLogger(__name__)


class LoopKind(Enum):
    KICK = "kick"      # percussive pulse
    BASS = "bass"      # bass line
    HIHAT = "hihat"    # noise hit
    PAD = "synth"      # harmonic pad


class NoiseSource(Protocol):
    """Anything with numpy Generator.uniform's signature."""
    def uniform(self, low: float, high: float, size: int) -> np.ndarray: ...


DEFAULT_DURATIONS: Dict[LoopKind, float] = {
    LoopKind.KICK: 1.0,
    LoopKind.BASS: 2.0,
    LoopKind.HIHAT: 1.0,
    LoopKind.PAD: 2.0,
}

# percussive pulse
KICK_BEATS = 4
KICK_HIT_SEC = 0.15
KICK_F0 = 150.0
KICK_SWEEP_RATE = 30.0
KICK_DECAY_RATE = 15.0
KICK_GAIN = 0.8

# bass line (A1, A1, D2, E2)
BASS_NOTES = (55.0, 55.0, 73.42, 82.41)
BASS_ATTACK_RATE = 50.0
BASS_DECAY_RATE = 2.0
BASS_GAIN = 0.4

# noise hit
HIHAT_HITS = 8
HIHAT_HIT_SEC = 0.05
HIHAT_DECAY_RATE = 80.0
HIHAT_GAIN = 0.3

# harmonic pad (C4, E4, G4, E4)
PAD_NOTES = (261.63, 329.63, 392.00, 329.63)
PAD_PARTIALS = 8
PAD_GAIN = 0.2


def _frame_count(sample_rate: int, duration: float) -> int:
    if int(sample_rate) <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if duration < 0:
        raise ValueError(f"duration must be non-negative, got {duration}")
    return int(math.floor(sample_rate * duration))


def _slot_start(n: int, length: int, slots: int) -> int:
    return int(math.floor(n * (length / slots)))


def _write(out: np.ndarray, start: int, values: np.ndarray) -> None:
    """Copy `values` into out[start:], dropping whatever runs past the end."""
    n = min(values.shape[0], out.shape[0] - start)
    if n > 0:
        out[start:start + n] = values[:n]


def kick_loop(sample_rate: int, duration: float = DEFAULT_DURATIONS[LoopKind.KICK]) -> AudioBuffer:
    length = _frame_count(sample_rate, duration)
    out = np.zeros(length, dtype=np.float32)

    hit = int(math.floor(sample_rate * KICK_HIT_SEC))
    t = np.arange(hit, dtype=np.float64) / sample_rate
    y = decaying_chirp(KICK_F0, KICK_SWEEP_RATE, t) * exp_decay(t, KICK_DECAY_RATE) * KICK_GAIN

    for beat in range(KICK_BEATS):
        _write(out, _slot_start(beat, length, KICK_BEATS), y)
    return AudioBuffer(sample_rate, out)


def bass_loop(sample_rate: int, duration: float = DEFAULT_DURATIONS[LoopKind.BASS]) -> AudioBuffer:
    length = _frame_count(sample_rate, duration)
    out = np.zeros(length, dtype=np.float32)
    note_len = length / len(BASS_NOTES)

    t = np.arange(math.ceil(note_len), dtype=np.float64) / sample_rate
    env = attack_decay(t, BASS_ATTACK_RATE, BASS_DECAY_RATE)
    for n, freq in enumerate(BASS_NOTES):
        wave = sine(freq, t) + 0.5 * sine(2.0 * freq, t)
        _write(out, _slot_start(n, length, len(BASS_NOTES)), wave * env * BASS_GAIN)
    return AudioBuffer(sample_rate, out)


def hihat_loop(sample_rate: int, duration: float = DEFAULT_DURATIONS[LoopKind.HIHAT],
               rng: Optional[NoiseSource] = None) -> AudioBuffer:
    length = _frame_count(sample_rate, duration)
    out = np.zeros(length, dtype=np.float32)
    rng = rng if rng is not None else np.random.default_rng()

    hit = int(math.floor(sample_rate * HIHAT_HIT_SEC))
    t = np.arange(hit, dtype=np.float64) / sample_rate
    env = exp_decay(t, HIHAT_DECAY_RATE) * HIHAT_GAIN
    for n in range(HIHAT_HITS):
        noise = np.asarray(rng.uniform(-1.0, 1.0, hit), dtype=np.float64)
        _write(out, _slot_start(n, length, HIHAT_HITS), noise * env)
    return AudioBuffer(sample_rate, out)


def pad_loop(sample_rate: int, duration: float = DEFAULT_DURATIONS[LoopKind.PAD]) -> AudioBuffer:
    length = _frame_count(sample_rate, duration)
    out = np.zeros(length, dtype=np.float32)
    note_len = length / len(PAD_NOTES)

    i = np.arange(math.ceil(note_len), dtype=np.float64)
    t = i / sample_rate
    env = half_sine(i / note_len) if note_len > 0 else i
    amps = inverse_harmonic_amps(PAD_PARTIALS)
    for n, freq in enumerate(PAD_NOTES):
        wave = harmonic_stack(freq, t, amps)
        _write(out, _slot_start(n, length, len(PAD_NOTES)), wave * env * PAD_GAIN)
    return AudioBuffer(sample_rate, out)


_GENERATORS: Dict[LoopKind, Callable[..., AudioBuffer]] = {
    LoopKind.KICK: kick_loop,
    LoopKind.BASS: bass_loop,
    LoopKind.HIHAT: hihat_loop,
    LoopKind.PAD: pad_loop,
}


def synthesize(kind, sample_rate: int, duration: Optional[float] = None,
               rng: Optional[NoiseSource] = None) -> AudioBuffer:
    """
    Render one loop. `kind` is a LoopKind or its string value ("kick",
    "bass", "hihat", "synth"). Only the hihat loop uses `rng`.
    """
    try:
        kind = LoopKind(kind)
    except ValueError:
        raise ValueError(f"Unknown loop kind: {kind!r}") from None
    if duration is None:
        duration = DEFAULT_DURATIONS[kind]
    if kind is LoopKind.HIHAT:
        return hihat_loop(sample_rate, duration, rng=rng)
    return _GENERATORS[kind](sample_rate, duration)


def build_loop_library(sample_rate: int, rng: Optional[NoiseSource] = None) -> Dict[LoopKind, AudioBuffer]:
    """Render every loop once at its default length."""
    library = {kind: synthesize(kind, sample_rate, rng=rng) for kind in LoopKind}
    logger.debug("Rendered %d loops at %d Hz", len(library), sample_rate)
    return library
