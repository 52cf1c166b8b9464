"""
Tempo and beat extraction from a mixed envelope.

- ``detect_peaks`` / ``estimate_tempo``: loudest sample per window and the
  dominant inter-peak tempo.
- ``chunk_energies`` / ``average_energy`` / ``local_energy``: mean-square
  energy used to boost note density on intense beats.
- ``quantize_peaks`` / ``merge_beats``: peaks in seconds to a per-difficulty
  grid of musical beats.
"""

import logging
import math
from collections import Counter

import numpy as np

from .errors import InsufficientDataError
from .models import Peak, QuantizedBeat
from .profiles import DifficultyProfile

logger = logging.getLogger(__name__)

MIN_BPM = 90
MAX_BPM = 180
TEMPO_NEIGHBOURS = 9
ENERGY_CHUNK = 1024
START_OFFSET = 2.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ------------------------------
# PEAKS & TEMPO
# ------------------------------
def detect_peaks(envelope: np.ndarray, sample_rate: int, window_size: int) -> list[Peak]:
    """Loudest sample of each non-overlapping window, silent windows skipped."""
    window_size = int(window_size)
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")
    magnitudes = np.abs(np.asarray(envelope, dtype=np.float64))

    peaks = []
    for start in range(0, len(magnitudes), window_size):
        window = magnitudes[start:start + window_size]
        offset = int(np.argmax(window))
        amplitude = float(window[offset])
        if amplitude <= 0.0:
            continue
        index = start + offset
        peaks.append(Peak(
            sample_index=index,
            amplitude=min(amplitude, 1.0),
            time_seconds=index / sample_rate,
        ))
    return peaks


def fold_bpm(bpm: float) -> float:
    """Double or halve ``bpm`` into [MIN_BPM, MAX_BPM)."""
    if not math.isfinite(bpm) or bpm <= 0:
        raise ValueError(f"Cannot fold non-positive tempo {bpm}")
    while bpm < MIN_BPM:
        bpm *= 2
    while bpm >= MAX_BPM:
        bpm /= 2
    return bpm


def tempo_histogram(peaks: list[Peak], sample_rate: int) -> Counter:
    loudest = sorted(peaks, key=lambda p: p.amplitude, reverse=True)
    top = loudest[:max(2, len(peaks) // 4)]
    top.sort(key=lambda p: p.sample_index)

    histogram = Counter()
    for i, first in enumerate(top):
        for second in top[i + 1:i + 1 + TEMPO_NEIGHBOURS]:
            distance = second.sample_index - first.sample_index
            if distance <= 0:
                continue
            tempo = round_half_up(fold_bpm(sample_rate * 60 / distance))
            if tempo >= MAX_BPM:
                tempo //= 2
            histogram[tempo] += 1
    return histogram


def estimate_tempo(peaks: list[Peak], sample_rate: int) -> int:
    if len(peaks) < 2:
        raise InsufficientDataError(f"Need at least 2 peaks to estimate tempo, got {len(peaks)}")
    histogram = tempo_histogram(peaks, sample_rate)
    if not histogram:
        raise InsufficientDataError("No usable peak intervals to estimate tempo")
    # most_common keeps first-seen order between equal counts
    tempo, count = histogram.most_common(1)[0]
    logger.debug("Tempo %d BPM (%d of %d intervals)", tempo, count, sum(histogram.values()))
    return tempo


# ------------------------------
# ENERGY
# ------------------------------
def mean_square(samples: np.ndarray) -> float:
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.mean(samples * samples))


def chunk_energies(samples: np.ndarray, chunk_size: int = ENERGY_CHUNK) -> np.ndarray:
    samples = np.asarray(samples, dtype=np.float64)
    return np.array([
        mean_square(samples[i:i + chunk_size])
        for i in range(0, len(samples), chunk_size)
    ])


def average_energy(samples: np.ndarray, chunk_size: int = ENERGY_CHUNK) -> float:
    energies = chunk_energies(samples, chunk_size)
    if energies.size == 0:
        raise InsufficientDataError("Cannot compute energy of an empty signal")
    return float(energies.mean())


def local_energy(samples: np.ndarray, index: int, chunk_size: int = ENERGY_CHUNK) -> float:
    """Energy of a chunk centred on ``index``, clamped to the signal."""
    half = chunk_size // 2
    start = max(0, index - half)
    stop = min(len(samples), index + half)
    return mean_square(samples[start:stop])


# ------------------------------
# QUANTIZE
# ------------------------------
def snap_beat(beat: float, spacing: float) -> float:
    return round_half_up(beat / spacing) * spacing


def merge_beats(beats: list[QuantizedBeat], spacing: float | None) -> list[QuantizedBeat]:
    """Snap beats to ``spacing`` and keep the first beat of each grid slot.

    With ``spacing=None`` beats are kept unsnapped and only exact repeats merge.
    """
    merged = {}
    for b in beats:
        t = b.beat if spacing is None else snap_beat(b.beat, spacing)
        if t not in merged:
            merged[t] = QuantizedBeat(beat=t, energy=b.energy)
    return sorted(merged.values(), key=lambda b: b.beat)


def quantize_peaks(
    peaks: list[Peak],
    tempo: float,
    samples: np.ndarray,
    profile: DifficultyProfile,
    *,
    start_offset: float = START_OFFSET,
    snap: bool = True,
    chunk_size: int = ENERGY_CHUNK,
) -> list[QuantizedBeat]:
    beats_per_second = tempo / 60
    raw = [
        QuantizedBeat(
            beat=peak.time_seconds * beats_per_second,
            energy=local_energy(samples, peak.sample_index, chunk_size),
        )
        for peak in peaks
        if peak.amplitude >= profile.min_volume
    ]
    merged = merge_beats(raw, profile.beat_spacing if snap else None)
    return [b for b in merged if b.beat >= start_offset]
