import math

import numpy as np
import pytest

from audio.buffer import AudioBuffer, waveform_peaks
from loops.synth import (
    DEFAULT_DURATIONS, LoopKind, bass_loop, build_loop_library, hihat_loop,
    kick_loop, pad_loop, synthesize,
)

SR = 44100


class ConstantNoise:
    """Noise source that always returns the same value."""
    def __init__(self, value=1.0):
        self.value = value

    def uniform(self, low, high, size):
        return np.full(size, self.value)


@pytest.mark.parametrize("kind", list(LoopKind))
@pytest.mark.parametrize("sr, duration", [(44100, 1.0), (22050, 0.75), (8000, 2.0), (48000, 0.3333), (8000, 0.1)])
def test_length_and_range (kind, sr, duration):
    buf = synthesize(kind, sr, duration, rng=np.random.default_rng(0))
    assert buf.frames == math.floor(sr * duration)
    assert buf.sample_rate == sr
    assert buf.channels == 1
    assert np.all(np.abs(buf.data) <= 1.0 + 1e-6)


def test_zero_duration_gives_empty_buffer ():
    buf = synthesize(LoopKind.PAD, SR, 0.0)
    assert buf.frames == 0
    assert buf.duration == 0.0


def test_default_durations ():
    for kind, duration in DEFAULT_DURATIONS.items():
        assert synthesize(kind, 8000).frames == int(8000 * duration)


def test_kind_accepts_string_values ():
    assert np.array_equal(synthesize("kick", 8000, 0.5).data, synthesize(LoopKind.KICK, 8000, 0.5).data)
    assert np.array_equal(synthesize("synth", 8000, 0.5).data, pad_loop(8000, 0.5).data)


@pytest.mark.parametrize("args", [("snare", SR, 1.0), ("kick", 0, 1.0), ("kick", SR, -1.0)])
def test_invalid_arguments_raise (args):
    with pytest.raises(ValueError):
        synthesize(*args)


class TestKick:

    def test_beats_start_at_zero_and_tail_is_silent (self):
        buf = kick_loop(SR, 1.0)
        beat = SR // 4
        hit = int(SR * 0.15)
        for b in range(4):
            start = b * beat
            assert buf.data[start] == 0.0           # sin(0)
            assert abs(buf.data[start + 1]) > 0.0
            assert np.all(buf.data[start + hit:start + beat] == 0.0)

    def test_amplitude (self):
        peak = np.max(np.abs(kick_loop(SR, 1.0).data))
        assert 0.3 < peak < 0.8

    def test_deterministic (self):
        assert np.array_equal(kick_loop(SR, 1.0).data, kick_loop(SR, 1.0).data)


class TestBass:

    def test_envelope_starts_silent_and_stays_bounded (self):
        buf = bass_loop(SR, 2.0)
        assert buf.data[0] == 0.0
        assert np.max(np.abs(buf.data)) < 0.6

    def test_each_note_is_voiced (self):
        buf = bass_loop(SR, 2.0)
        note = buf.frames // 4
        for n in range(4):
            seg = buf.data[n * note:(n + 1) * note]
            assert np.max(np.abs(seg)) > 0.1


class TestHihat:

    def test_seeded_generator_is_reproducible (self):
        a = hihat_loop(SR, 1.0, rng=np.random.default_rng(7))
        b = hihat_loop(SR, 1.0, rng=np.random.default_rng(7))
        assert np.array_equal(a.data, b.data)

    def test_fixed_noise_gives_pure_envelope (self):
        buf = hihat_loop(SR, 1.0, rng=ConstantNoise(1.0))
        assert buf.data[0] == pytest.approx(0.3)
        t = 10 / SR
        assert buf.data[10] == pytest.approx(0.3 * math.exp(-80 * t), rel=1e-5)

    def test_statistical_envelope (self):
        buf = hihat_loop(SR, 1.0)
        hit = int(SR * 0.05)
        assert np.max(np.abs(buf.data)) <= 0.3 + 1e-6
        for n in range(8):
            start = math.floor(n * SR / 8)
            slot = math.floor((n + 1) * SR / 8) - start
            head = buf.data[start:start + 200]
            assert np.std(head) > 0.01
            assert np.all(buf.data[start + hit:start + slot] == 0.0)
        # the decay: early energy dominates late energy in each hit
        early = np.mean(np.abs(buf.data[:200]))
        late = np.mean(np.abs(buf.data[hit - 200:hit]))
        assert early > 5 * late


class TestPad:

    def test_half_sine_envelope (self):
        buf = pad_loop(SR, 2.0)
        note = buf.frames // 4
        assert buf.data[0] == 0.0
        mid = buf.data[note // 2 - 500:note // 2 + 500]
        assert np.max(np.abs(mid)) > 0.1
        assert np.max(np.abs(buf.data)) < 0.45

    def test_deterministic (self):
        assert np.array_equal(pad_loop(8000, 1.0).data, pad_loop(8000, 1.0).data)


def test_library_renders_every_kind ():
    lib = build_loop_library(8000, rng=np.random.default_rng(0))
    assert set(lib) == set(LoopKind)
    assert lib[LoopKind.BASS].duration == pytest.approx(2.0)


class TestAudioBuffer:

    def test_data_is_read_only (self):
        buf = kick_loop(8000, 0.5)
        with pytest.raises(ValueError):
            buf.data[0] = 1.0

    def test_duration (self):
        buf = AudioBuffer(100, np.zeros(250))
        assert buf.duration == pytest.approx(2.5)
        assert len(buf) == 250

    def test_rejects_bad_sample_rate (self):
        with pytest.raises(ValueError):
            AudioBuffer(0, np.zeros(10))

    def test_waveform_peaks (self):
        buf = AudioBuffer(4, np.array([0.0, 1.0, -1.0, 0.5]))
        peaks = waveform_peaks(buf, 2)
        assert peaks.tolist() == [[0.0, 1.0], [-1.0, 0.5]]

    def test_waveform_peaks_wider_than_buffer (self):
        buf = AudioBuffer(4, np.array([0.25, -0.5, 0.75, 0.0]))
        peaks = waveform_peaks(buf, 6)
        assert peaks.shape == (6, 2)
        assert peaks[2].tolist() == [0.75, 0.75]
        assert peaks[5].tolist() == [0.0, 0.0]
