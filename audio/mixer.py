from __future__ import annotations
from typing import Dict, Tuple
import numpy as np

from audio.graph import AudioGraph, GainStage

DEFAULT_MASTER_VOLUME = 0.8
DEFAULT_CROSSFADE = 0.5


def equal_power_gains(position: float) -> Tuple[float, float]:
    """
    Equal-power crossfade law. position ∈ [0..1] -> (gA, gB).
    0 = all deck A, 1 = all deck B; gA² + gB² == 1 everywhere, so the
    midpoint sits at -3 dB on each side instead of dipping.
    """
    p = max(0.0, min(1.0, float(position)))
    angle = p * 0.5 * np.pi
    return float(np.cos(angle)), float(np.sin(angle))


class MixBus:
    """
    Two deck sends blended by the crossfader, then the master volume.
    The analysis tap sits after the sends and before the master volume.
    """
    LABELS = ("A", "B")

    def __init__(self, graph: AudioGraph, crossfade: float = DEFAULT_CROSSFADE,
                 master_volume: float = DEFAULT_MASTER_VOLUME):
        self.graph = graph
        self._crossfade = max(0.0, min(1.0, float(crossfade)))
        ga, gb = equal_power_gains(self._crossfade)
        self._sends: Dict[str, GainStage] = {"A": graph.gain(ga), "B": graph.gain(gb)}
        self._send_gains = (ga, gb)

        self._master_volume = max(0.0, float(master_volume))
        graph.master.set("gain", self._master_volume)

    def send(self, label: str) -> GainStage:
        return self._sends[label]

    ###########################################################################
    ##                              CONTROLS                                 ##
    ###########################################################################

    def set_crossfade(self, position: float) -> None:
        self._crossfade = max(0.0, min(1.0, float(position)))
        ga, gb = equal_power_gains(self._crossfade)
        self._send_gains = (ga, gb)
        self.graph.set_param(self._sends["A"], "gain", ga)
        self.graph.set_param(self._sends["B"], "gain", gb)

    def set_master_volume(self, value: float) -> None:
        self._master_volume = max(0.0, float(value))
        self.graph.set_param(self.graph.master, "gain", self._master_volume)

    ###########################################################################
    ##                             READ ACCESS                               ##
    ###########################################################################

    @property
    def crossfade(self) -> float:
        return self._crossfade

    @property
    def send_gains(self) -> Tuple[float, float]:
        return self._send_gains

    @property
    def master_volume(self) -> float:
        return self._master_volume

    def frequency_snapshot(self) -> np.ndarray:
        """Fresh byte magnitudes of the master signal; call once per frame."""
        return self.graph.analyser.byte_frequency_data()
