from __future__ import annotations
import logging
from enum import Enum
from typing import Dict, Optional, Union

from audio.buffer import AudioBuffer
from audio.graph import AudioGraph, GainStage, LoopingSource
from routing.commands import StartSource, StopSource
from transport.clock import elapsed_position, epoch_start, wrap_position

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_GAIN = 0.8
MIN_PLAYBACK_RATE = 1.0 / 16.0


class EqBand(Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"

    @classmethod
    def parse(cls, band: Union["EqBand", str]) -> Optional["EqBand"]:
        """Map a UI band name to a band; None for anything unknown."""
        if isinstance(band, cls):
            return band
        try:
            return cls(str(band).lower())
        except ValueError:
            return None


# kind, centre frequency (Hz), Q
EQ_BANDS = {
    EqBand.LOW: ("lowshelf", 320.0, 0.707),
    EqBand.MID: ("peaking", 1000.0, 0.5),
    EqBand.HIGH: ("highshelf", 3200.0, 0.707),
}


class Deck:
    """
    One channel strip with its own transport.

    Signal order is fixed when the deck is built:
        source -> channel gain -> low shelf -> mid peak -> high shelf -> send
    After construction the deck only changes parameters and swaps the
    playing source; it never rewires the graph.

    Position is always derived from the audio clock:
        playing:  ((now - start) * rate) mod duration
        paused:   pause_offset mod duration
    """

    def __init__(self, label: str, graph: AudioGraph, send: GainStage,
                 volume: float = DEFAULT_CHANNEL_GAIN):
        self.label = label
        self.graph = graph

        self.buffer: Optional[AudioBuffer] = None
        self._source: Optional[LoopingSource] = None
        self._playing = False
        self._pause_offset = 0.0
        self._start = 0.0
        self._rate = 1.0
        self._volume = max(0.0, float(volume))

        self._gain = graph.gain(self._volume)
        self._eq = {band: graph.eq(kind, freq, q=q) for band, (kind, freq, q) in EQ_BANDS.items()}
        self._eq_gains = {band: 0.0 for band in EqBand}
        self._strip = graph.strip(
            [self._gain, self._eq[EqBand.LOW], self._eq[EqBand.MID], self._eq[EqBand.HIGH]],
            send,
        )

    def __repr__(self) -> str:
        state = "playing" if self._playing else "stopped"
        return f"Deck({self.label!r}, {state}, rate={self._rate:.3f})"

    ###########################################################################
    ##                          READ ACCESSORS                               ##
    ###########################################################################

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def pause_offset(self) -> float:
        return self._pause_offset

    @property
    def playback_rate(self) -> float:
        return self._rate

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def eq_gains(self) -> Dict[EqBand, float]:
        return dict(self._eq_gains)

    def _now(self) -> float:
        return self.graph.clock.current_time

    def _has_audio(self) -> bool:
        return self.buffer is not None and self.buffer.frames > 0

    def get_playback_position(self) -> float:
        if not self._has_audio():
            return 0.0
        if self._playing:
            pos = elapsed_position(self._now(), self._start, self._rate)
        else:
            pos = self._pause_offset
        return wrap_position(pos, self.buffer.duration)

    ###########################################################################
    ##                             TRANSPORT                                 ##
    ###########################################################################

    def load_buffer(self, buffer: Optional[AudioBuffer]) -> None:
        self.stop()
        self.buffer = buffer
        self._pause_offset = 0.0
        logger.debug("Deck %s loaded %s", self.label,
                     f"{buffer.duration:.3f}s buffer" if buffer is not None else "nothing")

    def play(self) -> None:
        if self._playing or not self._has_audio():
            return
        offset = wrap_position(self._pause_offset, self.buffer.duration)
        self._source = self.graph.source(self.buffer, self._rate)
        self.graph.post(StartSource(self._strip, self._source, offset))
        self._start = epoch_start(self._now(), offset, self._rate)
        self._playing = True

    def pause(self) -> None:
        if not self._playing:
            return
        self._pause_offset = elapsed_position(self._now(), self._start, self._rate)
        self._release_source()
        self._playing = False

    def stop(self) -> None:
        self._release_source()
        self._playing = False
        self._pause_offset = 0.0

    def toggle(self) -> bool:
        if self._playing:
            self.pause()
        else:
            self.play()
        return self._playing

    def _release_source(self) -> None:
        if self._source is not None:
            self.graph.post(StopSource(self._strip, self._source))
            self._source = None

    ###########################################################################
    ##                             CONTROLS                                  ##
    ###########################################################################

    def set_volume(self, value: float) -> None:
        self._volume = max(0.0, float(value))
        self.graph.set_param(self._gain, "gain", self._volume)

    def set_pitch(self, cents: float) -> None:
        """
        True cents: rate = 2 ** (cents / 1200), so +1200 doubles the rate
        and -1200 halves it. Pitch and tempo move together. Slider values in
        percent belong in set_pitch_percent, not here.
        """
        self._set_rate(2.0 ** (float(cents) / 1200.0))

    def set_pitch_percent(self, percent: float) -> None:
        """Turntable-style pitch fader: rate = 1 + percent / 100."""
        self._set_rate(1.0 + float(percent) / 100.0)

    def _set_rate(self, rate: float) -> None:
        rate = max(MIN_PLAYBACK_RATE, rate)
        if self._playing:
            # keep the reported position continuous across the change
            now = self._now()
            pos = elapsed_position(now, self._start, self._rate)
            self._start = epoch_start(now, pos, rate)
        self._rate = rate
        if self._source is not None:
            self.graph.set_param(self._source, "rate", rate)

    def set_eq(self, band: Union[EqBand, str], gain_db: float) -> None:
        band = EqBand.parse(band)
        if band is None:
            return
        self._eq_gains[band] = float(gain_db)
        self.graph.set_param(self._eq[band], "gain_db", self._eq_gains[band])
