import json

import pytest

from saberchart.errors import ConfigError
from saberchart.profiles import DIFFICULTIES, PRESETS, apply_overrides, get_profile, load_profiles


def test_presets_are_ordered_by_rank():
    assert DIFFICULTIES == ("easy", "normal", "hard", "expert", "expertPlus")
    assert [PRESETS[d].rank for d in DIFFICULTIES] == [1, 3, 5, 7, 9]


def test_density_increases_with_tier():
    spacings = [PRESETS[d].note_spacing for d in DIFFICULTIES]
    assert spacings == sorted(spacings, reverse=True)
    assert PRESETS["easy"].min_volume > PRESETS["hard"].min_volume


def test_replace_normalises_sequences():
    profile = PRESETS["hard"].replace(note_spawn_rates=[0.9, 0.2], slider_range=[1, 2])
    assert profile.note_spawn_rates == (0.9, 0.2)
    assert profile.slider_range == (1, 2)
    assert PRESETS["hard"].note_spawn_rates == (0.75, 0.25)


@pytest.mark.parametrize("changes", [
    {"tempo": 3},
    {"buffer_size": 0},
    {"slider_range": (4.0, 2.0)},
    {"note_spawn_rates": (0.5,)},
    {"retry_limit": -1},
])
def test_invalid_changes(changes):
    with pytest.raises(ConfigError):
        PRESETS["hard"].replace(**changes)


def test_get_profile():
    assert get_profile("expert") is PRESETS["expert"]
    with pytest.raises(ConfigError):
        get_profile("impossible")


def test_get_profile_from_overridden_set():
    profiles = apply_overrides({"hard": {"min_volume": 0.3}})
    assert get_profile("hard", profiles).min_volume == 0.3
    with pytest.raises(ConfigError):
        get_profile("expert", {"hard": profiles["hard"]})


def test_overrides_leave_other_tiers_alone():
    profiles = apply_overrides({"easy": {"obstacle_spawn_rate": 0.0}})
    assert profiles["easy"].obstacle_spawn_rate == 0.0
    assert profiles["hard"] is PRESETS["hard"]


@pytest.mark.parametrize("overrides", [[], {"legend": {}}, {"easy": 3}])
def test_bad_override_shapes(overrides):
    with pytest.raises(ConfigError):
        apply_overrides(overrides)


def test_load_profiles(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps({"expertPlus": {"max_center_cells": None}}))
    assert load_profiles(path)["expertPlus"].max_center_cells is None

    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_profiles(path)

    with pytest.raises(FileNotFoundError):
        load_profiles(tmp_path / "missing.json")
