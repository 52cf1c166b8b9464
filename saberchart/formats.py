"""
Beatmap documents: ``info.dat`` (v2.0.0) and one level file (v3.0.0) per
difficulty.

See https://bsmg.wiki/mapping/map-format/beatmap.html for the field layout.
"""

import json
import random
from pathlib import Path

from .models import Chart, LightEvent, Note, Obstacle, Slider
from .profiles import DifficultyProfile

INFO_VERSION = "2.0.0"
MAP_VERSION = "3.0.0"
PREVIEW_START_TIME = 10
PREVIEW_DURATION = 30
SONG_FILENAME = "song.egg"
COVER_FILENAME = "cover.jpg"
LEVEL_AUTHOR = "saberchart"
CHARACTERISTIC = "Standard"
OBSTACLE_ROW = 0
OBSTACLE_HEIGHT = 4


def beatmap_filename(profile: DifficultyProfile, characteristic: str = CHARACTERISTIC) -> str:
    return f"{profile.label}{characteristic}.dat"


def create_info(song_name: str, author_name: str, bpm: float, cover_filename: str = COVER_FILENAME) -> dict:
    return {
        "_version": INFO_VERSION,
        "_songName": song_name,
        "_songSubName": "",
        "_songAuthorName": author_name,
        "_levelAuthorName": LEVEL_AUTHOR,
        "_beatsPerMinute": round(bpm),
        "_songTimeOffset": 0,
        "_shuffle": 0,
        "_shufflePeriod": 0,
        "_previewStartTime": PREVIEW_START_TIME,
        "_previewDuration": PREVIEW_DURATION,
        "_songFilename": SONG_FILENAME,
        "_coverImageFilename": cover_filename,
        "_environmentName": "DefaultEnvironment",
        "_allDirectionsEnvironmentName": "GlassDesertEnvironment",
        "_customData": {},
        "_difficultyBeatmapSets": [],
    }


def add_difficulty(
    info: dict,
    profile: DifficultyProfile,
    rng: random.Random,
    *,
    offset: float = 0,
    characteristic: str = CHARACTERISTIC,
) -> dict:
    entry = {
        "_difficulty": profile.label,
        "_difficultyRank": profile.rank,
        "_beatmapFilename": beatmap_filename(profile, characteristic),
        "_noteJumpMovementSpeed": rng.choice(profile.jump_speeds),
        "_noteJumpStartBeatOffset": offset,
        "_customData": {},
    }
    sets = info["_difficultyBeatmapSets"]
    beatmap_set = next((s for s in sets if s["_beatmapCharacteristicName"] == characteristic), None)
    if beatmap_set is None:
        beatmap_set = {"_beatmapCharacteristicName": characteristic, "_difficultyBeatmaps": []}
        sets.append(beatmap_set)
    beatmap_set["_difficultyBeatmaps"].append(entry)
    return entry


# ------------------------------
# LEVEL
# ------------------------------
def note_to_dict(note: Note) -> dict:
    return {
        "b": note.beat,
        "x": note.cell.x,
        "y": note.cell.y,
        "c": int(note.hand),
        "d": int(note.direction),
        "a": 0,
    }


def obstacle_to_dict(obstacle: Obstacle) -> dict:
    return {
        "b": obstacle.beat,
        "d": obstacle.duration,
        "x": obstacle.column,
        "y": OBSTACLE_ROW,
        "w": obstacle.width,
        "h": OBSTACLE_HEIGHT,
    }


def slider_to_dict(slider: Slider) -> dict:
    head, tail = slider.head, slider.tail
    return {
        "c": int(head.hand),
        "b": head.beat,
        "x": head.cell.x,
        "y": head.cell.y,
        "d": int(head.direction),
        "mu": 1.0,
        "tb": tail.beat,
        "tx": tail.cell.x,
        "ty": tail.cell.y,
        "tc": int(tail.direction),
        "tmu": 1.0,
        "m": 0,
    }


def event_to_dict(event: LightEvent) -> dict:
    return {"b": event.beat, "et": event.event_type, "i": event.value, "f": event.brightness}


def level_document(chart: Chart, bpm: float) -> dict:
    return {
        "version": MAP_VERSION,
        "bpmEvents": [{"b": 0, "m": bpm}],
        "rotationEvents": [],
        "colorNotes": [note_to_dict(n) for n in chart.notes],
        "bombNotes": [],
        "obstacles": [obstacle_to_dict(o) for o in chart.obstacles],
        "sliders": [slider_to_dict(s) for s in chart.sliders],
        "burstSliders": [],
        "waypoints": [],
        "basicBeatmapEvents": [event_to_dict(e) for e in chart.events],
        "colorBoostBeatmapEvents": [],
        "lightColorEventBoxGroups": [],
        "lightRotationEventBoxGroups": [],
        "basicEventTypesWithKeywords": {"d": []},
        "useNormalEventsAsCompatibleEvents": False,
        "customData": {},
    }


def write_json(data: dict, output_file: str | Path, indent: int | None = None) -> Path:
    output_file = Path(output_file)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)
    return output_file
