"""
Saberchart: Generate four-column, nine-direction rhythm game beatmaps from audio.

Usage:

    from saberchart import BeatmapGenerator

    generator = BeatmapGenerator("song.wav", cfg={"seed": 7})
    charts = generator.generate_charts()
    generator.export("maps/song")
    generator.preview("maps/song/preview.png")
"""

from .core import BeatmapGenerator
from .errors import InsufficientDataError, SaberchartError
from .models import Chart, Track
from .profiles import DIFFICULTIES, DifficultyProfile

__all__ = [
    "BeatmapGenerator",
    "Chart",
    "DIFFICULTIES",
    "DifficultyProfile",
    "InsufficientDataError",
    "SaberchartError",
    "Track",
]
