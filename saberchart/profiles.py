"""
Per-difficulty tuning for beat placement and chart generation.

Beat quantities (spacings, ranges, durations) are measured in musical beats,
``buffer_size`` in seconds. Override presets with a JSON object keyed by
difficulty name, for example::

    {"hard": {"min_volume": 0.2, "note_spawn_rates": [0.8, 0.3]}}
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError


@dataclass(frozen=True)
class DifficultyProfile:
    name: str
    label: str
    rank: int
    jump_speeds: tuple[float, ...]

    # Beat detection
    buffer_size: float = 0.5
    min_volume: float = 0.1
    energy_threshold: float = 1.5
    beat_spacing: float = 0.25

    # Notes
    note_spawn_rates: tuple[float, float] = (0.75, 0.25)
    energy_boosts: tuple[float, float] = (0.25, 0.125)
    note_spacing: float = 0.5
    note_connect_spacing: float = 2.0
    max_center_cells: int | None = 1
    max_top_cells: int | None = 1
    retry_limit: int = 390

    # Obstacles
    obstacle_spawn_rate: float = 0.03
    obstacle_spacing: float = 15.0
    obstacle_disappear_spacing: float = 0.5

    # Sliders
    slider_spawn_rate: float = 0.5
    slider_range: tuple[float, float] = (1.25, 5.0)

    def __post_init__(self):
        if self.buffer_size <= 0:
            raise ConfigError(f"{self.name}: buffer_size must be positive, got {self.buffer_size}")
        if self.beat_spacing <= 0:
            raise ConfigError(f"{self.name}: beat_spacing must be positive, got {self.beat_spacing}")
        if len(self.note_spawn_rates) != 2 or len(self.energy_boosts) != 2:
            raise ConfigError(f"{self.name}: note_spawn_rates and energy_boosts need two values")
        low, high = self.slider_range
        if low > high:
            raise ConfigError(f"{self.name}: slider_range {self.slider_range} is reversed")
        if self.retry_limit < 0:
            raise ConfigError(f"{self.name}: retry_limit must not be negative")

    def replace(self, **changes) -> DifficultyProfile:
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(f"{self.name}: unknown profile fields {unknown}")
        for key in ("jump_speeds", "note_spawn_rates", "energy_boosts", "slider_range"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return dataclasses.replace(self, **changes)


PRESETS: dict[str, DifficultyProfile] = {
    "easy": DifficultyProfile(
        name="easy", label="Easy", rank=1, jump_speeds=(7, 8),
        buffer_size=0.5, min_volume=0.7,
        note_spawn_rates=(0.5, 0.1), note_spacing=1.0, note_connect_spacing=2.0,
        obstacle_spawn_rate=0.02, obstacle_spacing=25.0,
        slider_spawn_rate=0.5, slider_range=(2.0, 6.0),
    ),
    "normal": DifficultyProfile(
        name="normal", label="Normal", rank=3, jump_speeds=(9, 10),
        buffer_size=0.5, min_volume=0.4,
        note_spawn_rates=(0.75, 0.1), note_spacing=0.75, note_connect_spacing=2.25,
        obstacle_spawn_rate=0.02, obstacle_spacing=20.0,
        slider_spawn_rate=0.5, slider_range=(1.75, 6.0),
    ),
    "hard": DifficultyProfile(
        name="hard", label="Hard", rank=5, jump_speeds=(11, 12),
        buffer_size=0.5, min_volume=0.1,
        note_spawn_rates=(0.75, 0.25), note_spacing=0.5, note_connect_spacing=2.0,
        obstacle_spawn_rate=0.03, obstacle_spacing=15.0,
        slider_spawn_rate=0.5, slider_range=(1.25, 5.0),
    ),
    "expert": DifficultyProfile(
        name="expert", label="Expert", rank=7, jump_speeds=(13, 14),
        buffer_size=0.4, min_volume=0.1,
        note_spawn_rates=(0.75, 0.375), note_spacing=0.25, note_connect_spacing=1.5,
        obstacle_spawn_rate=0.04, obstacle_spacing=12.5,
        slider_spawn_rate=0.6, slider_range=(1.25, 5.0),
    ),
    "expertPlus": DifficultyProfile(
        name="expertPlus", label="ExpertPlus", rank=9, jump_speeds=(15, 16),
        buffer_size=0.3, min_volume=0.1,
        note_spawn_rates=(0.75, 0.5), note_spacing=0.25, note_connect_spacing=1.5,
        obstacle_spawn_rate=0.05, obstacle_spacing=10.0,
        slider_spawn_rate=0.7, slider_range=(1.25, 5.0),
    ),
}

DIFFICULTIES = tuple(PRESETS)


def get_profile(name: str, profiles: dict[str, DifficultyProfile] | None = None) -> DifficultyProfile:
    profiles = PRESETS if profiles is None else profiles
    try:
        return profiles[name]
    except KeyError:
        raise ConfigError(f"Unknown difficulty {name!r}, expected one of {list(profiles)}") from None


def apply_overrides(overrides: dict, base: dict[str, DifficultyProfile] | None = None) -> dict[str, DifficultyProfile]:
    profiles = dict(PRESETS if base is None else base)
    if not isinstance(overrides, dict):
        raise ConfigError("Profile overrides must be a JSON object keyed by difficulty")
    for name, changes in overrides.items():
        if name not in profiles:
            raise ConfigError(f"Unknown difficulty {name!r} in profile overrides")
        if not isinstance(changes, dict):
            raise ConfigError(f"Overrides for {name!r} must be an object")
        profiles[name] = profiles[name].replace(**changes)
    return profiles


def load_profiles(path: str | Path) -> dict[str, DifficultyProfile]:
    path = Path(path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Profile file not found: {path}")
    try:
        with open(path, "r") as f:
            overrides = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    return apply_overrides(overrides)
