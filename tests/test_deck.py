import numpy as np
import pytest

from audio.buffer import AudioBuffer
from audio.deck import MIN_PLAYBACK_RATE, Deck, EqBand
from audio.graph import AudioGraph
from audio.mixer import MixBus
from loops.synth import kick_loop

SR = 44100


@pytest.fixture
def graph ():
    return AudioGraph(SR)


@pytest.fixture
def deck (graph):
    bus = MixBus(graph)
    d = Deck("A", graph, bus.send("A"))
    d.load_buffer(kick_loop(SR, 1.0))
    return d


def advance (graph, seconds):
    graph.clock.advance_seconds(seconds)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

def test_scenario_pause_and_resume (graph, deck):
    assert deck.buffer.frames == 44100
    deck.play()
    advance(graph, 0.5)
    assert deck.get_playback_position() == pytest.approx(0.5)

    deck.pause()
    assert deck.pause_offset == pytest.approx(0.5)
    assert not deck.is_playing

    deck.play()
    advance(graph, 0.7)
    assert deck.get_playback_position() == pytest.approx(0.2, abs=1e-9)


def test_resume_continues_from_pause_point (graph, deck):
    deck.play()
    advance(graph, 0.3)
    deck.pause()
    advance(graph, 5.0)   # time passes while paused
    assert deck.get_playback_position() == pytest.approx(0.3)
    deck.play()
    assert deck.get_playback_position() == pytest.approx(0.3)


def test_position_wraps_once_per_duration (graph, deck):
    deck.play()
    positions = []
    for _ in range(350):
        advance(graph, 0.01)
        positions.append(deck.get_playback_position())

    assert all(0.0 <= p < deck.buffer.duration for p in positions)
    wraps = sum(1 for a, b in zip(positions, positions[1:]) if b < a)
    assert wraps == 3


def test_pause_offset_beyond_duration_is_read_modulo (graph, deck):
    deck.play()
    advance(graph, 2.25)
    deck.pause()
    assert deck.pause_offset == pytest.approx(2.25)
    assert deck.get_playback_position() == pytest.approx(0.25)


def test_stop_resets_position (graph, deck):
    deck.play()
    advance(graph, 0.4)
    deck.stop()
    assert not deck.is_playing
    assert deck.pause_offset == 0.0
    assert deck.get_playback_position() == 0.0


def test_toggle_returns_state (graph, deck):
    assert deck.toggle() is True
    advance(graph, 0.1)
    assert deck.toggle() is False
    assert deck.pause_offset == pytest.approx(0.1)


@pytest.mark.parametrize("playing", [True, False])
def test_load_buffer_resets_transport (graph, deck, playing):
    deck.play()
    advance(graph, 0.6)
    if not playing:
        deck.pause()
    new = kick_loop(SR, 0.5)
    deck.load_buffer(new)
    assert deck.buffer is new
    assert not deck.is_playing
    assert deck.pause_offset == 0.0
    assert deck.get_playback_position() == 0.0


# ---------------------------------------------------------------------------
# Idempotence and no-ops
# ---------------------------------------------------------------------------

def test_play_twice_posts_one_start (graph, deck):
    deck.play()
    deck.play()
    assert graph.bus.pending() == 1
    assert deck.is_playing


def test_pause_and_stop_are_idempotent (graph, deck):
    deck.play()
    advance(graph, 0.2)
    deck.pause()
    offset = deck.pause_offset
    pending = graph.bus.pending()
    deck.pause()
    assert deck.pause_offset == offset
    assert graph.bus.pending() == pending

    deck.stop()
    deck.stop()
    assert deck.pause_offset == 0.0
    assert not deck.is_playing


def test_play_without_buffer_is_silent_noop (graph):
    d = Deck("B", graph, MixBus(graph).send("B"))
    d.play()
    assert not d.is_playing
    assert graph.bus.pending() == 0
    assert d.get_playback_position() == 0.0


def test_play_with_empty_buffer_is_noop (graph, deck):
    deck.load_buffer(AudioBuffer(SR, np.zeros(0)))
    deck.play()
    assert not deck.is_playing
    assert deck.get_playback_position() == 0.0


# ---------------------------------------------------------------------------
# Pitch
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("cents, rate", [(1200, 2.0), (-1200, 0.5), (0, 1.0), (700, 2 ** (7 / 12))])
def test_pitch_in_cents (deck, cents, rate):
    deck.set_pitch(cents)
    assert deck.playback_rate == pytest.approx(rate)


def test_pitch_percent (deck):
    deck.set_pitch_percent(8)
    assert deck.playback_rate == pytest.approx(1.08)
    deck.set_pitch_percent(-100)
    assert deck.playback_rate == MIN_PLAYBACK_RATE


def test_pitch_change_keeps_position_continuous (graph, deck):
    deck.play()
    advance(graph, 0.25)
    deck.set_pitch(1200)
    assert deck.get_playback_position() == pytest.approx(0.25)
    advance(graph, 0.25)
    assert deck.get_playback_position() == pytest.approx(0.75)


def test_pitch_applies_to_running_source (graph, deck):
    deck.play()
    graph.render(64)
    deck.set_pitch(-1200)
    graph.render(64)
    strip = graph._strips[0]
    assert strip.source.rate == pytest.approx(0.5)


def test_resume_at_double_rate (graph, deck):
    deck.set_pitch(1200)
    deck.play()
    advance(graph, 0.2)
    assert deck.get_playback_position() == pytest.approx(0.4)
    deck.pause()
    assert deck.pause_offset == pytest.approx(0.4)
    deck.play()
    assert deck.get_playback_position() == pytest.approx(0.4)


# ---------------------------------------------------------------------------
# Gain and EQ
# ---------------------------------------------------------------------------

def test_volume (deck):
    assert deck.volume == pytest.approx(0.8)
    deck.set_volume(1.2)
    assert deck.volume == pytest.approx(1.2)
    deck.set_volume(-1)
    assert deck.volume == 0.0


def test_setters_never_overflow_without_rendering (graph, deck):
    for i in range(5000):
        deck.set_volume((i % 100) / 100)
    for _ in range(5001):
        deck.toggle()
    assert graph.bus.pending() < 4096
    assert deck.is_playing
    for _ in range(20):
        graph.render(256)
    assert deck._gain.gain == pytest.approx(0.99)
    assert graph.bus.pending() == 0


def test_eq_bands (deck):
    assert deck.eq_gains == {EqBand.LOW: 0.0, EqBand.MID: 0.0, EqBand.HIGH: 0.0}
    deck.set_eq("low", -6)
    deck.set_eq(EqBand.HIGH, 3.5)
    deck.set_eq("MID", 1)
    assert deck.eq_gains == {EqBand.LOW: -6.0, EqBand.MID: 1.0, EqBand.HIGH: 3.5}


def test_unknown_eq_band_is_noop (graph, deck):
    before = graph.bus.pending()
    deck.set_eq("presence", 12)
    assert graph.bus.pending() == before
    assert all(v == 0.0 for v in deck.eq_gains.values())


def test_eq_band_parse ():
    assert EqBand.parse("low") is EqBand.LOW
    assert EqBand.parse(EqBand.MID) is EqBand.MID
    assert EqBand.parse("sub") is None
    assert EqBand.parse(None) is None
