import logging
import time

from audio.console import Console
from audio.engine import AudioEngine
from loops.synth import LoopKind
from transport.platter import Platter

SR = 44100
BLOCK = 256

logging.basicConfig(level=logging.INFO, format="%(message)s")

console = Console(sample_rate=SR)
console.load("B", LoopKind.PAD)
console.deck_a.set_eq("low", 4.0)
console.deck_b.set_pitch_percent(-4)

engine = AudioEngine(console.graph, blocksize=BLOCK, channels=2, limiter_drive=1.15)
engine.start()

console.deck_a.play()
console.deck_b.play()
platters = {label: Platter() for label in console.decks}

print("Console demo running: crossfader sweeps A <-> B. Ctrl+C to quit.")
try:
    t0 = time.perf_counter()
    while True:
        time.sleep(1 / 30)
        # slow sweep, one round trip every 8 seconds
        phase = ((time.perf_counter() - t0) / 8.0) % 1.0
        console.mix.set_crossfade(1.0 - abs(2.0 * phase - 1.0))

        now = console.clock.current_time
        for label, deck in console.decks.items():
            platters[label].follow(now, deck.is_playing, deck.playback_rate)
except KeyboardInterrupt:
    console.deck_a.stop()
    console.deck_b.stop()
    engine.stop()
