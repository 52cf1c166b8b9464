from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .grid import Direction, GridCell, Hand, obstacle_cells


@dataclass(frozen=True, eq=False)
class Track:
    """Decoded audio: ``channels`` has shape (n_channels, n_samples)."""

    channels: np.ndarray
    sample_rate: int
    title: str = ""
    artist: str = "Unknown"

    @property
    def n_samples(self) -> int:
        return int(self.channels.shape[-1])

    @property
    def duration_seconds(self) -> float:
        return self.n_samples / self.sample_rate if self.sample_rate else 0.0


@dataclass(frozen=True)
class Peak:
    sample_index: int
    amplitude: float
    time_seconds: float


@dataclass(frozen=True)
class QuantizedBeat:
    beat: float
    energy: float


@dataclass(frozen=True)
class Note:
    hand: Hand
    beat: float
    cell: GridCell
    direction: Direction


@dataclass(frozen=True)
class Obstacle:
    beat: float
    duration: float
    column: int
    width: int

    @property
    def end(self) -> float:
        return self.beat + self.duration

    @property
    def cells(self) -> frozenset[GridCell]:
        return obstacle_cells(self.column, self.width)

    def is_active(self, beat: float, disappear_spacing: float) -> bool:
        return self.beat <= beat <= self.end + disappear_spacing

    def blocks(self, note: Note) -> bool:
        return note.cell in self.cells


@dataclass(frozen=True)
class Slider:
    head: Note
    tail: Note

    @property
    def hand(self) -> Hand:
        return self.head.hand

    @property
    def gap(self) -> float:
        return self.tail.beat - self.head.beat


@dataclass(frozen=True)
class LightEvent:
    beat: float
    event_type: int
    value: int
    brightness: float = 1.0


@dataclass
class ChartStats:
    """Diagnostics collected while a chart is generated."""

    notes: dict = field(default_factory=lambda: {Hand.LEFT: 0, Hand.RIGHT: 0})
    connected: dict = field(default_factory=lambda: {Hand.LEFT: 0, Hand.RIGHT: 0})
    passed: int = 0
    large_energy_beats: int = 0
    positions: list = field(default_factory=lambda: [0] * len(GridCell))
    directions: list = field(default_factory=lambda: [0] * len(Direction))

    def record(self, note: Note, connected: bool) -> None:
        self.notes[note.hand] += 1
        if connected:
            self.connected[note.hand] += 1
        self.positions[note.cell] += 1
        self.directions[note.direction] += 1


@dataclass(frozen=True)
class Chart:
    difficulty: str
    notes: tuple[Note, ...]
    obstacles: tuple[Obstacle, ...]
    sliders: tuple[Slider, ...]
    events: tuple[LightEvent, ...]
    stats: ChartStats
    seed: int | None = None
