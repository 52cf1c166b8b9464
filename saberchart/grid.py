"""
The 4 x 3 note grid, cut directions and the movement tables the chart
generator walks.

Rows are counted from the top (row 0 is the top layer), columns from the
left. The wire format uses ``x`` for the column and ``y`` for the layer
counted from the bottom, see :attr:`GridCell.x` and :attr:`GridCell.y`.
"""

import enum
import random

from .errors import InvalidStateError

COLUMNS = 4
ROWS = 3


class Hand(enum.IntEnum):
    LEFT = 0
    RIGHT = 1

    @property
    def other(self) -> "Hand":
        return Hand.RIGHT if self is Hand.LEFT else Hand.LEFT


class GridCell(enum.IntEnum):
    TOP_0 = 0
    TOP_1 = 1
    TOP_2 = 2
    TOP_3 = 3
    MID_0 = 4
    MID_1 = 5
    MID_2 = 6
    MID_3 = 7
    BOTTOM_0 = 8
    BOTTOM_1 = 9
    BOTTOM_2 = 10
    BOTTOM_3 = 11

    @property
    def row(self) -> int:
        return self.value // COLUMNS

    @property
    def col(self) -> int:
        return self.value % COLUMNS

    @property
    def x(self) -> int:
        return self.col

    @property
    def y(self) -> int:
        return ROWS - 1 - self.row

    @classmethod
    def at(cls, row: int, col: int) -> "GridCell":
        if not (0 <= row < ROWS and 0 <= col < COLUMNS):
            raise InvalidStateError(f"No grid cell at row={row}, col={col}")
        return cls(row * COLUMNS + col)

    @classmethod
    def from_xy(cls, x: int, y: int) -> "GridCell":
        return cls.at(ROWS - 1 - y, x)

    def shifted(self, d_row: int, d_col: int) -> "GridCell | None":
        row, col = self.row + d_row, self.col + d_col
        if 0 <= row < ROWS and 0 <= col < COLUMNS:
            return GridCell.at(row, col)
        return None


class Direction(enum.IntEnum):
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    UP_LEFT = 4
    UP_RIGHT = 5
    DOWN_LEFT = 6
    DOWN_RIGHT = 7
    ANY = 8

    @property
    def opposite(self) -> "Direction":
        return OPPOSITE[self]


U, D, L, R = Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT
UL, UR, DL, DR = Direction.UP_LEFT, Direction.UP_RIGHT, Direction.DOWN_LEFT, Direction.DOWN_RIGHT
ANY = Direction.ANY

HORIZONTAL = frozenset({L, R})
VERTICAL = frozenset({U, D})
DIAGONAL = frozenset({UL, UR, DL, DR})
# Diagonals running along "\" and "/" respectively.
BACK_DIAGONAL = frozenset({UL, DR})
FORWARD_DIAGONAL = frozenset({UR, DL})

CENTER_CELLS = frozenset({GridCell.MID_1, GridCell.MID_2})

OPPOSITE = {
    U: D, D: U, L: R, R: L,
    UL: DR, DR: UL, UR: DL, DL: UR,
    ANY: ANY,
}

# Direction after moving to a new cell: mostly the opposite swing, sometimes
# one of its two neighbours.
NEW_CELL_DIRECTIONS = {
    UL: (DR, DR, DR, R, D),
    U: (D, D, D, DL, DR),
    UR: (DL, DL, DL, L, D),
    L: (R, R, R, UR, DR),
    ANY: (ANY,),
    R: (L, L, L, UL, DL),
    DL: (UR, UR, UR, U, R),
    D: (U, U, U, UL, UR),
    DR: (UL, UL, UL, U, L),
}

# Tail directions a slider head may flow into.
SLIDER_TAILS = {
    UL: frozenset({DR, R, D}),
    U: frozenset({D, DL, DR}),
    UR: frozenset({DL, L, D}),
    L: frozenset({R, UR, DR}),
    ANY: frozenset(Direction),
    R: frozenset({L, UL, DL}),
    DL: frozenset({UR, U, R}),
    D: frozenset({U, UL, UR}),
    DR: frozenset({UL, U, L}),
}

# (row step, column step) -> multiplicity in the candidate multiset. Staying
# put is the heaviest option; each hand drifts towards its own side.
STEP_WEIGHTS = {
    Hand.LEFT: {
        (-1, -1): 3, (-1, 0): 2, (-1, 1): 1,
        (0, -1): 4, (0, 0): 8, (0, 1): 1,
        (1, -1): 3, (1, 0): 2, (1, 1): 1,
    },
    Hand.RIGHT: {
        (-1, -1): 1, (-1, 0): 2, (-1, 1): 3,
        (0, -1): 1, (0, 0): 8, (0, 1): 4,
        (1, -1): 1, (1, 0): 2, (1, 1): 3,
    },
}


def _expand(table):
    return [
        (cell, direction)
        for cell, directions, repeat in table
        for _ in range(repeat)
        for direction in directions
    ]


# Positions and directions for a hand that is not continuing a stream.
OPENINGS = {
    Hand.LEFT: _expand([
        (GridCell.TOP_0, (UL, U, L), 4),
        (GridCell.TOP_1, (U, UR, R), 3),
        (GridCell.TOP_2, (U, UR, R), 1),
        (GridCell.MID_0, (UL, L, DL), 5),
        (GridCell.MID_1, (UR, R, DR), 1),
        (GridCell.MID_2, (UR, R, DR), 1),
        (GridCell.BOTTOM_0, (L, DL, D), 4),
        (GridCell.BOTTOM_1, (R, D, DR), 3),
        (GridCell.BOTTOM_2, (R, D, DR), 1),
    ]),
    Hand.RIGHT: _expand([
        (GridCell.TOP_1, (UL, U, L), 1),
        (GridCell.TOP_2, (UL, U, L), 3),
        (GridCell.TOP_3, (U, UR, R), 4),
        (GridCell.MID_1, (UL, L, DL), 1),
        (GridCell.MID_2, (UL, L, DL), 1),
        (GridCell.MID_3, (UR, R, DR), 5),
        (GridCell.BOTTOM_1, (L, DL, D), 1),
        (GridCell.BOTTOM_2, (L, DL, D), 3),
        (GridCell.BOTTOM_3, (R, D, DR), 4),
    ]),
}


def _check_tables():
    for name, table in (("OPPOSITE", OPPOSITE), ("NEW_CELL_DIRECTIONS", NEW_CELL_DIRECTIONS),
                        ("SLIDER_TAILS", SLIDER_TAILS)):
        missing = set(Direction) - set(table)
        if missing:
            raise InvalidStateError(f"{name} has no entry for {sorted(missing)}")
    for hand, weights in STEP_WEIGHTS.items():
        if len(weights) != 9 or weights[(0, 0)] != max(weights.values()):
            raise InvalidStateError(f"Step weights for {hand.name} must cover 9 steps with 'stay' heaviest")


_check_tables()


# ------------------------------
# CELL SELECTION
# ------------------------------
def candidate_cells(prev: GridCell, hand: Hand) -> list[GridCell]:
    """Weighted multiset of cells reachable from ``prev`` in one step."""
    cells = []
    for (d_row, d_col), weight in STEP_WEIGHTS[hand].items():
        cell = prev.shifted(d_row, d_col)
        if cell is not None:
            cells.extend([cell] * weight)
    return cells


def cap_cells(cells: list[GridCell], predicate, maximum: int) -> list[GridCell]:
    """Drop matching cells beyond ``maximum`` occurrences, keeping the last ones."""
    kept = []
    remaining = maximum
    for cell in reversed(cells):
        if predicate(cell):
            if remaining < 1:
                continue
            remaining -= 1
        kept.append(cell)
    kept.reverse()
    return kept


def next_cell(
    prev: GridCell,
    hand: Hand,
    rng: random.Random,
    *,
    max_center: int | None = 1,
    max_top: int | None = 1,
) -> GridCell:
    cells = candidate_cells(prev, hand)
    rng.shuffle(cells)
    if max_center is not None:
        cells = cap_cells(cells, lambda c: c in CENTER_CELLS, max_center)
    if max_top is not None:
        cells = cap_cells(cells, lambda c: c.row == 0, max_top)
    if not cells:
        raise InvalidStateError(f"No candidate cells left after {prev.name} for {hand.name}")
    return rng.choice(cells)


def next_direction(prev: Direction, same_cell: bool, rng: random.Random) -> Direction:
    if same_cell:
        return OPPOSITE[prev]
    return rng.choice(NEW_CELL_DIRECTIONS[prev])


def is_slider_tail(head: Direction, tail: Direction) -> bool:
    if head is ANY or tail is ANY:
        return True
    return tail in SLIDER_TAILS[head]


def obstacle_cells(column: int, width: int) -> frozenset[GridCell]:
    """Cells covered by a full-height wall spanning ``width`` columns."""
    return frozenset(
        GridCell.at(row, col)
        for col in range(column, column + width)
        for row in range(ROWS)
    )


# ------------------------------
# DUPE CHECK
# ------------------------------
def is_dupe(
    left_cell: GridCell,
    left_direction: Direction,
    right_cell: GridCell,
    right_direction: Direction,
) -> bool:
    """True when a left and a right note on the same beat cannot both be cut.

    Conflicts are: sharing a cell, crossed hands on one row, and adjacent
    cells whose swings run into each other.
    """
    left_cell, right_cell = GridCell(left_cell), GridCell(right_cell)
    left_direction, right_direction = Direction(left_direction), Direction(right_direction)
    directions = (left_direction, right_direction)

    if left_cell == right_cell:
        return True

    d_row = left_cell.row - right_cell.row
    d_col = left_cell.col - right_cell.col

    if d_row == 0:
        if d_col > 0:
            return True
        if abs(d_col) == 1:
            if any(d in HORIZONTAL for d in directions):
                return True
            if left_direction != right_direction and any(d in DIAGONAL for d in directions):
                return True

    if d_col == 0 and abs(d_row) == 1:
        if any(d in VERTICAL for d in directions):
            return True
        if left_direction != right_direction and any(d in DIAGONAL for d in directions):
            return True

    if abs(d_row) == 1 and abs(d_col) == 1:
        blocked = BACK_DIAGONAL if d_row * d_col > 0 else FORWARD_DIAGONAL
        if any(d in blocked for d in directions):
            return True

    return False
