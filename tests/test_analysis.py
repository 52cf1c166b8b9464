import numpy as np
import pytest

from saberchart.analysis import (
    average_energy,
    chunk_energies,
    detect_peaks,
    estimate_tempo,
    fold_bpm,
    local_energy,
    merge_beats,
    quantize_peaks,
    snap_beat,
    tempo_histogram,
)
from saberchart.audio import mix_channels
from saberchart.errors import InsufficientDataError
from saberchart.models import Peak, QuantizedBeat
from saberchart.profiles import PRESETS

from .audio_utils import SR, generate_impulses, generate_noise, generate_silence


def click_peaks(bpm: float, count: int = 24, sr: int = SR) -> list[Peak]:
    spacing = sr * 60 / bpm
    return [
        Peak(sample_index=int(round(1000 + i * spacing)), amplitude=1.0, time_seconds=(1000 + i * spacing) / sr)
        for i in range(count)
    ]


class TestMix:
    def test_sum_and_peak(self):
        channels = np.array([[0.5, -0.5, 0.1], [0.25, -0.75, -0.2]])
        np.testing.assert_allclose(mix_channels(channels, "sum"), [0.75, -1.25, -0.1])
        np.testing.assert_allclose(mix_channels(channels, "peak"), [0.5, 0.75, 0.2])

    def test_mono_input(self):
        np.testing.assert_allclose(mix_channels(np.array([0.1, -0.2]), "peak"), [0.1, 0.2])

    def test_envelope_is_read_only(self):
        envelope = mix_channels(np.zeros((2, 4)))
        with pytest.raises(ValueError):
            envelope[0] = 1.0

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            mix_channels(np.zeros((1, 4)), "mean")


class TestPeaks:
    def test_one_peak_per_window(self):
        envelope = np.array([0.1, 0.9, 0.2, 0.0, 0.3, 0.3, 0.7])
        peaks = detect_peaks(envelope, sample_rate=2, window_size=3)
        assert [p.sample_index for p in peaks] == [1, 4, 6]
        assert [p.amplitude for p in peaks] == [0.9, 0.3, 0.7]
        assert peaks[0].time_seconds == 0.5

    def test_silent_windows_produce_no_peak(self):
        envelope = np.concatenate([np.zeros(10), [0.5], np.zeros(9)])
        peaks = detect_peaks(envelope, sample_rate=10, window_size=5)
        assert [p.sample_index for p in peaks] == [10]

    def test_amplitude_is_clipped(self):
        peaks = detect_peaks(np.array([0.0, 1.7]), sample_rate=1, window_size=2)
        assert peaks[0].amplitude == 1.0

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            detect_peaks(np.ones(4), 1, 0)


class TestTempo:
    @pytest.mark.parametrize("bpm,expected", [(60, 120), (45, 90), (240, 120), (179.9, 179.9), (180, 90), (90, 90)])
    def test_fold(self, bpm, expected):
        assert fold_bpm(bpm) == pytest.approx(expected)

    def test_octave_invariance(self):
        assert estimate_tempo(click_peaks(100), SR) == estimate_tempo(click_peaks(200), SR) == 100

    def test_impulses_every_half_second_are_120_bpm(self):
        envelope = mix_channels(generate_impulses(10.0, 0.5), "peak")
        peaks = detect_peaks(envelope, SR, SR // 2)
        assert len(peaks) == 20
        assert estimate_tempo(peaks, SR) == 120

    def test_histogram_only_looks_at_nine_neighbours(self):
        histogram = tempo_histogram(click_peaks(120, count=80), SR)
        # 20 loudest peaks, each paired with at most 9 successors
        assert sum(histogram.values()) == sum(min(9, 20 - 1 - i) for i in range(20))

    def test_tie_goes_to_first_seen_bucket(self):
        loud = [0, SR // 2, SR // 2 + SR * 60 // 100]  # 120, 109 and 100 bpm pairs
        quiet = [SR * 2 + i * 1000 for i in range(9)]
        peaks = sorted(
            [Peak(i, 1.0, i / SR) for i in loud] + [Peak(i, 0.1, i / SR) for i in quiet],
            key=lambda p: p.sample_index,
        )
        histogram = tempo_histogram(peaks, SR)
        assert len(histogram) == 3 and set(histogram.values()) == {1}
        assert estimate_tempo(peaks, SR) == 120

    @pytest.mark.parametrize("count", [0, 1])
    def test_insufficient_peaks(self, count):
        with pytest.raises(InsufficientDataError):
            estimate_tempo(click_peaks(120, count=count), SR)

    def test_tempo_is_finite_positive_on_noise(self):
        envelope = mix_channels(generate_noise(5.0), "peak")
        tempo = estimate_tempo(detect_peaks(envelope, SR, SR // 2), SR)
        assert 90 <= tempo < 180


class TestEnergy:
    def test_chunks_and_average(self):
        samples = np.concatenate([np.ones(4), np.zeros(4), 2 * np.ones(2)])
        np.testing.assert_allclose(chunk_energies(samples, 4), [1.0, 0.0, 4.0])
        assert average_energy(samples, 4) == pytest.approx(5 / 3)

    def test_empty_signal(self):
        with pytest.raises(InsufficientDataError):
            average_energy(np.zeros(0))

    def test_local_energy_is_centred_and_clamped(self):
        samples = np.zeros(100)
        samples[50] = 2.0
        assert local_energy(samples, 50, chunk_size=10) == pytest.approx(4 / 10)
        assert local_energy(samples, 0, chunk_size=10) == 0.0
        assert local_energy(samples, 99, chunk_size=10) == 0.0

    def test_silence_has_zero_energy(self):
        assert average_energy(generate_silence(1.0)) == 0.0


class TestQuantize:
    def test_snap_rounds_half_up(self):
        assert snap_beat(2.625, 0.25) == 2.75
        assert snap_beat(2.6, 0.25) == 2.5

    def test_filters_snaps_and_merges(self):
        profile = PRESETS["normal"]  # min_volume 0.4, beat spacing 0.25
        samples = np.zeros(SR * 10)
        samples[SR * 2] = 1.0
        peaks = [
            Peak(SR // 2, 1.0, 0.5),           # beat 1.0, before the start offset
            Peak(SR * 2, 0.9, 2.0),            # beat 4.0
            Peak(SR * 2 + 200, 0.8, 2.0045),   # snaps onto beat 4.0 as well
            Peak(SR * 3, 0.3, 3.0),            # too quiet
            Peak(SR * 4, 0.5, 4.05),           # beat 8.1 -> 8.0
        ]
        beats = quantize_peaks(peaks, 120, samples, profile, chunk_size=1024)
        assert [b.beat for b in beats] == [4.0, 8.0]
        assert beats[0].energy == pytest.approx(1 / 1024)
        assert beats[1].energy == 0.0

    def test_unsnapped_keeps_raw_beats(self):
        peaks = [Peak(SR * 2, 1.0, 2.01)]
        beats = quantize_peaks(peaks, 120, np.zeros(SR * 3), PRESETS["hard"], snap=False)
        assert beats[0].beat == pytest.approx(4.02)

    def test_merge_is_idempotent(self):
        rng = np.random.default_rng(4)
        raw = [QuantizedBeat(beat=float(t), energy=float(e)) for t, e in zip(rng.uniform(0, 50, 300), rng.random(300))]
        once = merge_beats(raw, 0.25)
        assert merge_beats(once, 0.25) == once
        assert len({b.beat for b in once}) == len(once)
        assert [b.beat for b in once] == sorted(b.beat for b in once)

    def test_merge_keeps_first_energy(self):
        beats = [QuantizedBeat(3.01, 0.1), QuantizedBeat(2.99, 0.9)]
        assert merge_beats(beats, 0.25) == [QuantizedBeat(3.0, 0.1)]

    def test_merge_without_spacing_only_drops_repeats(self):
        beats = [QuantizedBeat(3.01, 0.1), QuantizedBeat(2.99, 0.9), QuantizedBeat(3.01, 0.5)]
        assert merge_beats(beats, None) == [QuantizedBeat(2.99, 0.9), QuantizedBeat(3.01, 0.1)]

    def test_quantized_beats_are_merged(self):
        rng = np.random.default_rng(8)
        times = np.sort(rng.uniform(0, 20, 400))
        peaks = [Peak(int(t * SR), 1.0, float(t)) for t in times]
        beats = quantize_peaks(peaks, 128, np.zeros(SR * 21), PRESETS["expert"])
        assert beats
        assert merge_beats(beats, PRESETS["expert"].beat_spacing) == beats
        assert min(b.beat for b in beats) >= 2.5
