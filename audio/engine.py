# audio/engine.py
import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from audio.dsp import soft_clip
from audio.graph import AudioGraph
from audio.meter import AudioMeter, MeterSnapshot

logger = logging.getLogger(__name__)


class AudioEngine:
    """
    Drives an AudioGraph from a sounddevice output stream.
    Each callback renders exactly one block; the graph's clock advances with
    it, which is what the decks use as their time base.
    """
    def __init__(self, graph: AudioGraph, blocksize=256, channels=2,
                 limiter_drive: Optional[float] = None, meter_period=1.0, device=None):
        if int(channels) not in (1, 2):
            raise ValueError("Only mono or stereo output supported currently.")
        self.graph = graph
        self.sr = graph.sr
        self.blocksize = int(blocksize)
        self.channels = int(channels)

        # limiter (None = hard safety only)
        self.limiter_drive = limiter_drive

        # metering
        self.meter = AudioMeter()
        self._meter_period = float(meter_period)
        self._meter_thread: Optional[threading.Thread] = None

        # coordinated shutdown
        self._stop_evt = threading.Event()

        self.stream = sd.OutputStream(
            channels=self.channels,
            samplerate=self.sr,
            blocksize=self.blocksize,
            callback=self._cb,
            latency='low',
            device=device,
        )

    ###########################################################################
    ##                              LIFECYCLE                                ##
    ###########################################################################
    def start(self):
        self._stop_evt.clear()
        self.stream.start()

        if self._meter_period > 0:
            self._meter_thread = threading.Thread(target=self._meter_logger, name="AudioMeterThread")
            self._meter_thread.start()
        logger.info("[Engine] started: %d Hz, block %d, %d ch", self.sr, self.blocksize, self.channels)

    def stop(self):
        self._stop_evt.set()

        # abort() is immediate; stop() drains
        for step in (self.stream.abort, self.stream.stop, self.stream.close):
            try:
                step()
            except sd.PortAudioError as e:
                logger.debug("[Engine] %s: %s", step.__name__, e)

        if self._meter_thread:
            self._meter_thread.join(timeout=2.0)
            if self._meter_thread.is_alive():
                logger.warning("[Engine] meter thread still alive after join()")
            self._meter_thread = None
        logger.info("[Engine] stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    ###########################################################################
    ##                           AUDIO CALL BACK                             ##
    ###########################################################################

    def _cb(self, outdata, frames, time_info, status):
        if status:
            logger.debug("[Engine] stream status: %s", status)
        if self._stop_evt.is_set():
            outdata.fill(0)
            return

        mix = self.process(frames)

        if self.channels == 1:
            outdata[:, 0] = mix
        else:
            outdata[:, 0] = mix
            outdata[:, 1] = mix

    def process(self, frames: int) -> np.ndarray:
        """Render, limit and meter one block."""
        mix = self.graph.render(frames)

        pre_peak = float(np.max(np.abs(mix))) if mix.size else 0.0
        out = soft_clip(mix, drive=self.limiter_drive) if self.limiter_drive else mix.copy()

        post_peak = float(np.max(np.abs(out))) if out.size else 0.0
        if post_peak > 1.0:
            out /= post_peak
            post_peak = 1.0

        block_rms = float(np.sqrt(np.mean(out.astype(np.float64) ** 2))) if out.size else 0.0
        limited = bool(np.any(np.abs(out - mix) > 1e-7))
        self.meter.update(pre_peak=pre_peak, post_peak=post_peak, block_rms=block_rms,
                          limited=limited, frames=frames)
        return out.astype(np.float32)

    ###########################################################################
    ##                           METERING THREAD                             ##
    ###########################################################################
    def _meter_logger(self):
        while not self._stop_evt.wait(timeout=self._meter_period):
            logger.info(self.format_meter(self.meter.snapshot_and_reset()))

    @classmethod
    def format_meter(cls, snap: MeterSnapshot) -> str:
        lim = " LIM" if snap.limited_blocks > 0 else ""
        return (f"[Audio] peak(pre/post): {snap.peak_pre_db:+6.1f} dBFS / "
                f"{snap.peak_post_db:+6.1f} dBFS | rms: {snap.rms_db:+6.1f} dBFS | "
                f"frames:{snap.frames:5d} | blocks_limited:{snap.limited_blocks:2d}"
                f"{cls._bar(snap.peak_post_db)}{lim}")

    @staticmethod
    def _bar(db, floor=-60.0, ceil=0.0, width=20):
        db = max(floor, min(ceil, db))
        fill = int((db - floor) / (ceil - floor) * width + 0.5)
        return " [" + ("#" * fill).ljust(width, ".") + "]"
