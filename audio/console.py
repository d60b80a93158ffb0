from __future__ import annotations
import logging
from typing import Dict, Optional

import numpy as np

from audio.buffer import AudioBuffer
from audio.deck import Deck
from audio.graph import AudioGraph
from audio.mixer import DEFAULT_CROSSFADE, DEFAULT_MASTER_VOLUME, MixBus
from loops.synth import LoopKind, NoiseSource, build_loop_library
from transport.clock import AudioClock

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
DEFAULT_LOOPS = {"A": LoopKind.KICK, "B": LoopKind.BASS}


class Console:
    """
    The whole two-deck console: graph, mix bus, both decks and the rendered
    loop library. Build one and hand it to whatever drives the UI or the
    display; there is no module-level instance.
    """
    def __init__(self, sample_rate: int = SAMPLE_RATE, rng: Optional[NoiseSource] = None,
                 crossfade: float = DEFAULT_CROSSFADE, master_volume: float = DEFAULT_MASTER_VOLUME,
                 load_defaults: bool = True):
        self.graph = AudioGraph(sample_rate)
        self.mix = MixBus(self.graph, crossfade=crossfade, master_volume=master_volume)
        self.decks: Dict[str, Deck] = {
            label: Deck(label, self.graph, self.mix.send(label)) for label in MixBus.LABELS
        }
        self.loops: Dict[LoopKind, AudioBuffer] = build_loop_library(self.graph.sr, rng=rng)

        if load_defaults:
            for label, kind in DEFAULT_LOOPS.items():
                self.load(label, kind)
        logger.info("Console ready at %d Hz", self.graph.sr)

    @property
    def sample_rate(self) -> int:
        return self.graph.sr

    @property
    def clock(self) -> AudioClock:
        return self.graph.clock

    @property
    def deck_a(self) -> Deck:
        return self.decks["A"]

    @property
    def deck_b(self) -> Deck:
        return self.decks["B"]

    def deck(self, label: str) -> Deck:
        return self.decks[label.upper()]

    def load(self, label: str, kind) -> AudioBuffer:
        """Load a loop from the library onto a deck (by reference, not copied)."""
        buffer = self.loops[LoopKind(kind)]
        self.deck(label).load_buffer(buffer)
        return buffer

    def render(self, frames: int) -> np.ndarray:
        """Render the next block offline, without a sound card."""
        return self.graph.render(frames)
