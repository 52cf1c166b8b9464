import hashlib
import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .grid import (
    OPENINGS,
    Direction,
    GridCell,
    Hand,
    is_dupe,
    is_slider_tail,
    next_cell,
    next_direction,
)
from .models import Chart, ChartStats, LightEvent, Note, Obstacle, QuantizedBeat, Slider
from .profiles import DifficultyProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ObstacleShape:
    column: int
    width: int
    duration: float


# Full-height walls on either side. Thin walls are three times as likely as
# wide ones.
OBSTACLE_SHAPES = tuple(
    ObstacleShape(column, width, duration)
    for duration in (5, 7, 9)
    for column, width, repeat in ((0, 1, 3), (0, 2, 1), (3, 1, 3), (2, 2, 1))
    for _ in range(repeat)
)

# Basic event types for the back lasers, ring lights, left/right lasers and
# road lights; value 1 switches a group on in blue.
LIGHT_GROUPS = (0, 1, 2, 3, 4)


def seed_for(base_seed: int, difficulty: str) -> int:
    payload = f"{base_seed}|{difficulty}".encode("utf-8")
    digest = hashlib.sha256(payload).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


def draw_until(draw: Callable[[], T], rejected: Callable[[T], bool], limit: int) -> Optional[T]:
    """Draw until a candidate is accepted, giving up after ``limit`` redraws."""
    candidate = draw()
    attempts = 0
    while rejected(candidate):
        if attempts >= limit:
            return None
        candidate = draw()
        attempts += 1
    return candidate


def lighting_events() -> list[LightEvent]:
    return [LightEvent(beat=0.0, event_type=group, value=1) for group in LIGHT_GROUPS]


def link_sliders(notes: list[Note], profile: DifficultyProfile, rng: random.Random) -> list[Slider]:
    """Link each note to the next note of the same hand when the swing can flow."""
    low, high = profile.slider_range
    sliders = []
    for hand in Hand:
        own = [n for n in notes if n.hand is hand]
        for head, tail in zip(own, own[1:]):
            if not is_slider_tail(head.direction, tail.direction):
                continue
            if not low <= tail.beat - head.beat <= high:
                continue
            if rng.random() < profile.slider_spawn_rate:
                sliders.append(Slider(head=head, tail=tail))
    sliders.sort(key=lambda s: s.head.beat)
    return sliders


class ChartGenerator:
    """Walks the quantized beats of one difficulty and places notes and walls.

    State between beats is the last note of each hand and the last obstacle.
    """

    def __init__(
        self,
        profile: DifficultyProfile,
        rng: random.Random,
        *,
        average_energy: float,
        seed: int | None = None,
    ):
        self.profile = profile
        self.rng = rng
        self.average_energy = average_energy
        self.seed = seed
        self._reset()

    def _reset(self):
        self.last_left: Note | None = None
        self.last_right: Note | None = None
        self.last_obstacle: Obstacle | None = None
        self.notes: list[Note] = []
        self.obstacles: list[Obstacle] = []
        self.stats = ChartStats()

    def last_note(self, hand: Hand) -> Note | None:
        return self.last_left if hand is Hand.LEFT else self.last_right

    def _remember(self, note: Note):
        if note.hand is Hand.LEFT:
            self.last_left = note
        else:
            self.last_right = note

    # ------------------------------
    # NOTE DRAWING
    # ------------------------------
    def draw_note(self, hand: Hand, beat: float, prev: Note | None) -> Note:
        if prev is None:
            cell, direction = self.rng.choice(OPENINGS[hand])
        else:
            cell = next_cell(
                prev.cell,
                hand,
                self.rng,
                max_center=self.profile.max_center_cells,
                max_top=self.profile.max_top_cells,
            )
            direction = next_direction(prev.direction, cell == prev.cell, self.rng)
        return Note(hand=hand, beat=beat, cell=GridCell(cell), direction=Direction(direction))

    @staticmethod
    def rejected(
        note: Note,
        obstacle: Obstacle | None,
        stale: Note | None,
        partner: Note | None,
    ) -> bool:
        if obstacle is not None and obstacle.blocks(note):
            return True
        if stale is not None and stale.cell == note.cell:
            return True
        if partner is not None:
            left, right = (note, partner) if note.hand is Hand.LEFT else (partner, note)
            return is_dupe(left.cell, left.direction, right.cell, right.direction)
        return False

    # ------------------------------
    # BEAT STEP
    # ------------------------------
    def step(self, qb: QuantizedBeat) -> list[Note]:
        p = self.profile
        rng = self.rng
        beat = qb.beat
        last = {hand: self.last_note(hand) for hand in Hand}

        active = self.last_obstacle
        if active is not None and not active.is_active(beat, p.obstacle_disappear_spacing):
            active = None

        connected = {h: n is not None and beat <= n.beat + p.note_connect_spacing for h, n in last.items()}
        creatable = {h: n is None or beat >= n.beat + p.note_spacing for h, n in last.items()}
        first = Hand.LEFT if rng.random() < 0.5 else Hand.RIGHT
        large = qb.energy >= self.average_energy * p.energy_threshold
        spawn_obstacle = rng.random() < p.obstacle_spawn_rate and (
            self.last_obstacle is None or beat >= self.last_obstacle.end + p.obstacle_spacing
        )
        if large:
            self.stats.large_energy_beats += 1

        # A hand still inside its stream keeps going, and goes first.
        create = {Hand.LEFT: False, Hand.RIGHT: False}
        for hand in Hand:
            mine, other = last[hand], last[hand.other]
            if connected[hand] and creatable[hand] and (other is None or mine.beat > other.beat):
                first = hand
                create[hand] = True

        order = (first, first.other)
        for rank, hand in enumerate(order):
            if creatable[hand] and not create[hand]:
                boost = p.energy_boosts[rank] if large else 0.0
                create[hand] = rng.random() < p.note_spawn_rates[rank] + boost

        if spawn_obstacle:
            shape = rng.choice(OBSTACLE_SHAPES)
            active = Obstacle(beat=beat, duration=shape.duration, column=shape.column, width=shape.width)
            self.obstacles.append(active)
            self.last_obstacle = active

        placed = {}
        for hand in order:
            if not create[hand]:
                continue
            prev = last[hand] if connected[hand] else None
            note = draw_until(
                lambda: self.draw_note(hand, beat, prev),
                lambda n: self.rejected(n, active, last[hand.other], placed.get(hand.other)),
                p.retry_limit,
            )
            if note is None:
                self.stats.passed += 1
                logger.debug("%s: dropped %s note at beat %s", p.name, hand.name.lower(), beat)
                continue
            placed[hand] = note
            self.stats.record(note, connected[hand])

        notes = [placed[hand] for hand in order if hand in placed]
        for note in notes:
            self._remember(note)
        self.notes.extend(notes)
        return notes

    def generate(self, beats: list[QuantizedBeat]) -> Chart:
        self._reset()
        for qb in sorted(beats, key=lambda b: b.beat):
            self.step(qb)
        sliders = link_sliders(self.notes, self.profile, self.rng)
        chart = Chart(
            difficulty=self.profile.name,
            notes=tuple(self.notes),
            obstacles=tuple(self.obstacles),
            sliders=tuple(sliders),
            events=tuple(lighting_events()),
            stats=self.stats,
            seed=self.seed,
        )
        log_chart(chart)
        return chart


def log_chart(chart: Chart):
    s = chart.stats
    logger.info(
        "%s: %d notes (%d left, %d connected; %d right, %d connected), %d obstacles, %d sliders",
        chart.difficulty,
        len(chart.notes),
        s.notes[Hand.LEFT], s.connected[Hand.LEFT],
        s.notes[Hand.RIGHT], s.connected[Hand.RIGHT],
        len(chart.obstacles),
        len(chart.sliders),
    )
    logger.info("%s: %d large energy beats, %d notes passed", chart.difficulty, s.large_energy_beats, s.passed)
    if logger.isEnabledFor(logging.DEBUG):
        rows = [" ".join(f"{n:4d}" for n in s.positions[i:i + 4]) for i in range(0, 12, 4)]
        logger.debug("%s note positions:\n  %s", chart.difficulty, "\n  ".join(rows))
        counts = [s.directions[d] for d in Direction]
        logger.debug("%s note directions (%s): %s", chart.difficulty,
                     " ".join(d.name for d in Direction), " ".join(str(c) for c in counts))
