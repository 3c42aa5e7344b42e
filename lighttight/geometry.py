"""Face directions and the octant layout of a block.

A block is split into 8 octants addressed by (x, y, z) in {0, 1}:
x: 0 = west, 1 = east; y: 0 = bottom, 1 = top; z: 0 = north, 1 = south.
Octant ``(x, y, z)`` has bit index ``x | y << 1 | z << 2``.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Tuple

Position = Tuple[int, int, int]
Octant = Tuple[int, int, int]


@dataclass(frozen=True)
class Direction:
    name: str
    dx: int
    dy: int
    dz: int

    @property
    def axis(self) -> int:
        """0, 1 or 2 for x, y, z."""
        return 0 if self.dx else (1 if self.dy else 2)

    @property
    def sign(self) -> int:
        return self.dx + self.dy + self.dz

    def opposite(self) -> "Direction":
        return _OPPOSITE[self.name]

    def step(self, pos: Position) -> Position:
        return pos[0] + self.dx, pos[1] + self.dy, pos[2] + self.dz

    def __str__(self) -> str:
        return self.name


UP = Direction("up", 0, 1, 0)
DOWN = Direction("down", 0, -1, 0)
NORTH = Direction("north", 0, 0, -1)
SOUTH = Direction("south", 0, 0, 1)
EAST = Direction("east", 1, 0, 0)
WEST = Direction("west", -1, 0, 0)

ALL_DIRECTIONS = (UP, DOWN, NORTH, SOUTH, EAST, WEST)

_BY_NAME: Dict[str, Direction] = {d.name: d for d in ALL_DIRECTIONS}
_OPPOSITE: Dict[str, Direction] = {
    "up": DOWN,
    "down": UP,
    "north": SOUTH,
    "south": NORTH,
    "east": WEST,
    "west": EAST,
}


def direction_from_name(name: str) -> Direction:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise ValueError(f"can't create a direction from name {name!r}") from None


# Stairs turn towards a second horizontal direction: (facing, side) -> direction.
STAIRS_TURN: Dict[Tuple[str, str], Direction] = {
    ("north", "right"): EAST,
    ("north", "left"): WEST,
    ("east", "right"): SOUTH,
    ("east", "left"): NORTH,
    ("south", "right"): WEST,
    ("south", "left"): EAST,
    ("west", "right"): NORTH,
    ("west", "left"): SOUTH,
}


# --- Octants, faces, edges --------------------------------------------------

ALL_OCTANTS: Tuple[Octant, ...] = tuple(itertools.product((0, 1), repeat=3))


def octant_bit(o: Octant) -> int:
    return 1 << (o[0] | (o[1] << 1) | (o[2] << 2))


def _face(d: Direction) -> Tuple[Octant, ...]:
    want = 1 if d.sign > 0 else 0
    return tuple(o for o in ALL_OCTANTS if o[d.axis] == want)


# Both faces of a pair list octants in the same product order, so the i-th
# octant of FACES[d] touches the i-th octant of FACES[d.opposite()].
FACES: Dict[Direction, Tuple[Octant, ...]] = {d: _face(d) for d in ALL_DIRECTIONS}
FACE_MASKS: Dict[Direction, int] = {d: sum(octant_bit(o) for o in FACES[d]) for d in ALL_DIRECTIONS}
EDGES: Dict[Tuple[Direction, Direction], Tuple[Octant, ...]] = {
    (a, b): tuple(o for o in FACES[a] if o in FACES[b]) for a in ALL_DIRECTIONS for b in ALL_DIRECTIONS
}
EDGE_MASKS: Dict[Tuple[Direction, Direction], int] = {k: sum(octant_bit(o) for o in v) for k, v in EDGES.items()}
