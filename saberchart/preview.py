import logging
from pathlib import Path

import numpy as np
from matplotlib.figure import Figure

from .grid import COLUMNS, ROWS, Direction
from .models import Chart

logger = logging.getLogger(__name__)

# Directions laid out as a compass rose.
COMPASS = (
    (Direction.UP_LEFT, Direction.UP, Direction.UP_RIGHT),
    (Direction.LEFT, Direction.ANY, Direction.RIGHT),
    (Direction.DOWN_LEFT, Direction.DOWN, Direction.DOWN_RIGHT),
)


def position_grid(chart: Chart) -> np.ndarray:
    return np.array(chart.stats.positions, dtype=int).reshape(ROWS, COLUMNS)


def direction_grid(chart: Chart) -> np.ndarray:
    counts = chart.stats.directions
    return np.array([[counts[d] for d in row] for row in COMPASS], dtype=int)


def _heatmap(ax, grid: np.ndarray, title: str):
    ax.imshow(grid, cmap="viridis")
    for (r, c), n in np.ndenumerate(grid):
        ax.text(c, r, str(n), ha="center", va="center", color="white", fontsize=8)
    ax.set_title(title, fontsize=9)
    ax.set_xticks([])
    ax.set_yticks([])


def render_preview(charts: list[Chart], output_file: str | Path, title: str = "") -> Path:
    """Plot note position and direction histograms for each chart."""
    if not charts:
        raise ValueError("No charts to preview")
    output_file = Path(output_file)

    fig = Figure(figsize=(2.6 * len(charts), 5))
    axes = fig.subplots(2, len(charts), squeeze=False)
    for i, chart in enumerate(charts):
        _heatmap(axes[0][i], position_grid(chart), f"{chart.difficulty}: {len(chart.notes)} notes")
        _heatmap(axes[1][i], direction_grid(chart), "directions")
    if title:
        fig.suptitle(title)
    fig.savefig(output_file, dpi=100)
    logger.info("Saved preview to %s", output_file)
    return output_file
