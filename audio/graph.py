"""
Block-based audio graph: the host side that actually renders samples.

The control thread builds the topology once (stages, strips) and afterwards
only posts commands on the EventBus. render() runs on the audio thread: it
drains the bus first, so every parameter change lands on a block boundary,
then pulls each strip and sums them into the master output.
"""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional

import numpy as np
import scipy.signal as sps

from audio import dsp
from audio.analyser import Analyser
from audio.buffer import AudioBuffer
from routing.bus import EventBus
from routing.commands import SetParam, StartSource, StopSource
from transport.clock import AudioClock

logger = logging.getLogger(__name__)


###############################################################################
##                               STAGES                                      ##
###############################################################################

class GainStage:
    def __init__(self, gain: float = 1.0):
        self.gain = float(gain)

    def set(self, name: str, value: float) -> None:
        if name != "gain":
            raise ValueError(f"GainStage has no parameter {name!r}")
        self.gain = float(value)

    def process(self, x: np.ndarray) -> np.ndarray:
        return x * self.gain


class BiquadStage:
    """
    One EQ band. Filter state (zi) is carried across blocks and survives
    coefficient changes, so moving a knob does not reset the filter.
    """
    KINDS = ("lowshelf", "peaking", "highshelf")

    def __init__(self, kind: str, sr: int, frequency: float, q: float = 0.707, gain_db: float = 0.0):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown filter kind: {kind}")
        self.kind = kind
        self.sr = int(sr)
        self.frequency = float(frequency)
        self.q = float(q)
        self.gain_db = float(gain_db)
        self._zi = np.zeros((1, 2), dtype=np.float64)
        self._design()

    def _design(self) -> None:
        if self.kind == "lowshelf":
            self.sos = dsp.low_shelf(self.gain_db, self.frequency, self.sr)
        elif self.kind == "highshelf":
            self.sos = dsp.high_shelf(self.gain_db, self.frequency, self.sr)
        else:
            self.sos = dsp.peaking(self.gain_db, self.frequency, self.q, self.sr)

    def set(self, name: str, value: float) -> None:
        if name == "gain_db":
            self.gain_db = float(value)
        elif name == "frequency":
            self.frequency = float(value)
        elif name == "q":
            self.q = float(value)
        else:
            raise ValueError(f"BiquadStage has no parameter {name!r}")
        self._design()

    def process(self, x: np.ndarray) -> np.ndarray:
        y, self._zi = sps.sosfilt(self.sos, x, zi=self._zi)
        return y


class LoopingSource:
    """
    Reads a buffer in an endless loop at a fractional rate (linear
    interpolation). Looping is a modular read index, never a retrigger.
    A source is started at most once; a stopped source is discarded.
    """
    def __init__(self, buffer: AudioBuffer, rate: float = 1.0):
        if buffer.frames == 0:
            raise ValueError("Cannot play an empty buffer.")
        self.buffer = buffer
        self.rate = float(rate)
        self.started = False
        self.stopped = False
        self._pos = 0.0   # in buffer frames

    def start(self, offset: float = 0.0) -> None:
        if self.started:
            raise RuntimeError("A source can only be started once.")
        self.started = True
        self._pos = (float(offset) * self.buffer.sample_rate) % self.buffer.frames

    def stop(self) -> None:
        self.stopped = True

    def set(self, name: str, value: float) -> None:
        if name != "rate":
            raise ValueError(f"LoopingSource has no parameter {name!r}")
        self.rate = float(value)

    @property
    def position(self) -> float:
        """Read position in seconds."""
        return self._pos / self.buffer.sample_rate

    def render(self, frames: int, sr: int) -> np.ndarray:
        data = self.buffer.data
        n = data.shape[0]
        step = self.rate * self.buffer.sample_rate / sr

        idx = self._pos + step * np.arange(frames, dtype=np.float64)
        i0 = np.floor(idx)
        frac = idx - i0
        i0 = i0.astype(np.int64) % n
        i1 = (i0 + 1) % n
        out = data[i0] * (1.0 - frac) + data[i1] * frac

        self._pos = (self._pos + step * frames) % n
        return out


###############################################################################
##                               STRIPS                                      ##
###############################################################################

class Strip:
    """Fixed chain: [source] -> stages... -> send."""
    def __init__(self, stages: Iterable, send: GainStage):
        self.stages = list(stages)
        self.send = send
        self.source: Optional[LoopingSource] = None
        self._fading: List[LoopingSource] = []

    def attach(self, source: LoopingSource, offset: float = 0.0) -> None:
        if self.source is not None:
            self.detach(self.source)
        source.start(offset)
        self.source = source

    def detach(self, source: LoopingSource) -> None:
        source.stop()
        if self.source is source:
            self.source = None
            self._fading.append(source)

    def render(self, frames: int, sr: int) -> np.ndarray:
        x = np.zeros(frames, dtype=np.float64)
        if self.source is not None:
            x += self.source.render(frames, sr)

        # a stopped source plays one last block, ramped to silence
        if self._fading:
            ramp = np.linspace(1.0, 0.0, frames)
            for src in self._fading:
                x += src.render(frames, sr) * ramp
            self._fading.clear()

        for stage in self.stages:
            x = stage.process(x)
        return self.send.process(x)


###############################################################################
##                               GRAPH                                       ##
###############################################################################

class AudioGraph:
    def __init__(self, sample_rate: int = 44100, bus: Optional[EventBus] = None,
                 clock: Optional[AudioClock] = None, analyser: Optional[Analyser] = None):
        self.sr = int(sample_rate)
        if self.sr <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.bus = bus if bus is not None else EventBus()
        self.clock = clock if clock is not None else AudioClock(self.sr)
        if self.clock.sample_rate != self.sr:
            raise ValueError("Clock and graph sample rates differ.")
        self.analyser = analyser if analyser is not None else Analyser()
        self.master = GainStage(1.0)
        self._strips: List[Strip] = []

    # ---- builder (control thread, before the stream starts) ----
    def gain(self, value: float = 1.0) -> GainStage:
        return GainStage(value)

    def eq(self, kind: str, frequency: float, q: float = 0.707, gain_db: float = 0.0) -> BiquadStage:
        return BiquadStage(kind, self.sr, frequency, q=q, gain_db=gain_db)

    def source(self, buffer: AudioBuffer, rate: float = 1.0) -> LoopingSource:
        return LoopingSource(buffer, rate)

    def strip(self, stages: Iterable, send: GainStage) -> Strip:
        s = Strip(stages, send)
        self._strips.append(s)
        return s

    # ---- commands (control thread, fire-and-forget) ----
    def post(self, command) -> None:
        self.bus.post(command)

    def set_param(self, target, name: str, value: float) -> None:
        self.post(SetParam(target, name, float(value)))

    def apply(self, command) -> None:
        if isinstance(command, SetParam):
            command.target.set(command.name, command.value)
        elif isinstance(command, StartSource):
            command.strip.attach(command.source, command.offset)
        elif isinstance(command, StopSource):
            command.strip.detach(command.source)
        else:
            logger.warning("Dropping unknown graph command %r", command)

    # ---- rendering (audio thread) ----
    def render(self, frames: int) -> np.ndarray:
        for cmd in self.bus.drain():
            self.apply(cmd)

        mix = np.zeros(frames, dtype=np.float64)
        for s in self._strips:
            mix += s.render(frames, self.sr)

        self.analyser.write(mix)
        out = self.master.process(mix).astype(np.float32)
        self.clock.advance(frames)
        return out
