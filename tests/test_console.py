import numpy as np
import pytest

from audio.console import Console
from audio.deck import Deck
from loops.synth import LoopKind


@pytest.fixture
def console ():
    return Console(sample_rate=8000, rng=np.random.default_rng(0))


def test_default_state (console):
    assert console.deck_a.buffer is console.loops[LoopKind.KICK]
    assert console.deck_b.buffer is console.loops[LoopKind.BASS]
    assert not console.deck_a.is_playing
    assert console.mix.crossfade == 0.5
    assert console.mix.master_volume == pytest.approx(0.8)
    assert console.sample_rate == 8000


def test_decks_are_looked_up_by_label (console):
    assert isinstance(console.deck("a"), Deck)
    assert console.deck("B") is console.deck_b
    with pytest.raises(KeyError):
        console.deck("C")


def test_load_shares_library_buffers (console):
    buf = console.load("A", "hihat")
    assert buf is console.loops[LoopKind.HIHAT]
    assert console.deck_a.buffer is buf
    with pytest.raises(ValueError):
        console.load("A", "vinyl-crackle")


def test_load_while_playing_stops_deck (console):
    console.deck_a.play()
    console.render(256)
    console.load("A", LoopKind.PAD)
    assert not console.deck_a.is_playing
    assert console.deck_a.get_playback_position() == 0.0


def test_positions_follow_rendered_audio (console):
    console.deck_a.play()
    for _ in range(10):
        console.render(400)
    # 4000 frames at 8 kHz
    assert console.clock.current_time == pytest.approx(0.5)
    assert console.deck_a.get_playback_position() == pytest.approx(0.5)


def test_without_defaults ():
    console = Console(sample_rate=8000, load_defaults=False)
    assert console.deck_a.buffer is None
    console.deck_a.play()
    assert not console.deck_a.is_playing
