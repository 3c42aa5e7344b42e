"""Light propagation through a region.

Two questions are asked for every face a breadth-first search crosses:

- can the light *see* the neighbour? It can unless the current block's face
  towards it is completely filled. A seen block counts as lit and survives
  pruning even when the light goes no further.
- can the light *move* into the neighbour? Only if some pair of octants
  facing each other across the shared face is empty on both sides. A bottom
  slab under a top slab can see the top slab but cannot move into it,
  otherwise the search would break through walls.

The search also walks a one block layer of air around the region so light
that escapes through a gap in the outer shell can come back in elsewhere.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Tuple

from .errors import ConfigError, OriginNotFound, OutOfBoundsAccess, TraversalBudgetExceeded
from .geometry import ALL_DIRECTIONS, FACES, Direction, Position
from .litematic import BlockState, Region, is_air
from .shapes import EMPTY, CellShape, ShapeCatalog

LOG = logging.getLogger(__name__)


def can_see(from_shape: CellShape, d: Direction) -> bool:
    return not from_shape.face_full(d)


def can_move(from_shape: CellShape, to_shape: CellShape, d: Direction) -> bool:
    for a, b in zip(FACES[d], FACES[d.opposite()]):
        if not from_shape.occupies(a) and not to_shape.occupies(b):
            return True
    return False


def block_can_see(catalog: ShapeCatalog, block: BlockState, d: Direction) -> bool:
    return can_see(catalog.shape_of(block), d)


def block_can_move(catalog: ShapeCatalog, src: BlockState, dst: BlockState, d: Direction) -> bool:
    return can_move(catalog.shape_of(src), catalog.shape_of(dst), d)


class PositionIndex:
    """Set of positions inside a fixed inclusive box, one byte per cell."""

    __slots__ = ("lo", "hi", "sx", "sy", "sz", "_cells", "_count")

    def __init__(self, lo: Position, hi: Position):
        self.lo = lo
        self.hi = hi
        self.sx = hi[0] - lo[0] + 1
        self.sy = hi[1] - lo[1] + 1
        self.sz = hi[2] - lo[2] + 1
        if self.sx <= 0 or self.sy <= 0 or self.sz <= 0:
            raise ValueError(f"empty box {lo}..{hi}")
        self._cells = bytearray(self.sx * self.sy * self.sz)
        self._count = 0

    @classmethod
    def padded(cls, region: Region, pad: int = 1) -> "PositionIndex":
        (x1, y1, z1), (x2, y2, z2) = region.bounds()
        return cls((x1 - pad, y1 - pad, z1 - pad), (x2 + pad, y2 + pad, z2 + pad))

    def like(self) -> "PositionIndex":
        return PositionIndex(self.lo, self.hi)

    def in_box(self, pos: Position) -> bool:
        return (
            self.lo[0] <= pos[0] <= self.hi[0]
            and self.lo[1] <= pos[1] <= self.hi[1]
            and self.lo[2] <= pos[2] <= self.hi[2]
        )

    def _offset(self, pos: Position) -> int:
        return (pos[0] - self.lo[0]) + (pos[2] - self.lo[2]) * self.sx + (pos[1] - self.lo[1]) * self.sx * self.sz

    def add(self, pos: Position) -> None:
        if not self.in_box(pos):
            raise OutOfBoundsAccess(f"{pos} is outside the tracked box {self.lo}..{self.hi}")
        i = self._offset(pos)
        if not self._cells[i]:
            self._cells[i] = 1
            self._count += 1

    def __contains__(self, pos: Position) -> bool:
        return self.in_box(pos) and bool(self._cells[self._offset(pos)])

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Position]:
        sx, sz = self.sx, self.sz
        x0, y0, z0 = self.lo
        for i, v in enumerate(self._cells):
            if v:
                yield x0 + i % sx, y0 + i // (sx * sz), z0 + (i // sx) % sz


@dataclass
class LightResult:
    origin: Position
    visited: PositionIndex
    reachable: PositionIndex
    generations: Dict[Position, int] = field(default_factory=dict)
    parents: Dict[Position, Position] = field(default_factory=dict)
    recolor: Dict[Position, int] = field(default_factory=dict)
    inside: Optional[Position] = None
    leaked: bool = False
    steps: int = 0

    @property
    def max_generation(self) -> int:
        return max(self.generations.values(), default=0)

    def backtrace(self) -> List[Position]:
        """Leak path from the target back to the origin (both included)."""
        if not self.leaked or self.inside is None:
            return []
        current = self.inside
        path = [current]
        while True:
            parent = self.parents.get(current)
            if parent is None or parent == current:
                break
            path.append(parent)
            current = parent
        return path


def traverse(
    region: Region,
    origin: Position,
    catalog: Optional[ShapeCatalog] = None,
    *,
    rainbow: bool = False,
    inside: Optional[Position] = None,
    max_steps: Optional[int] = None,
) -> LightResult:
    """Breadth-first light search from ``origin``; never mutates ``region``.

    With ``inside`` set the search records parents and stops as soon as it
    steps into that position (a leak). With ``rainbow`` set, every air block
    inspected is recorded with the generation it was last seen from.
    """
    if not region.contains(origin):
        raise OriginNotFound(f"origin {origin} is outside region {region.name!r}")
    if inside is not None:
        if not region.contains(inside):
            raise ConfigError(f"leak target {inside} is outside region {region.name!r}")
        if inside == origin:
            raise ConfigError("leak target must differ from the origin")
    catalog = catalog or ShapeCatalog()

    visited = PositionIndex.padded(region)
    reachable = visited.like()
    result = LightResult(origin=origin, visited=visited, reachable=reachable, inside=inside)
    generations = result.generations
    parents = result.parents
    track_parents = inside is not None

    q: Deque[Tuple[Position, int]] = deque([(origin, 0)])
    visited.add(origin)
    generations[origin] = 0
    last_gen = 0

    while q:
        pos, gen = q.popleft()
        result.steps += 1
        if max_steps is not None and result.steps > max_steps:
            raise TraversalBudgetExceeded(f"region {region.name!r}: gave up after {max_steps} steps at generation {gen}")
        if gen != last_gen:
            LOG.debug("generation %d, %d position(s) queued", gen, len(q))
            last_gen = gen

        current_shape = catalog.shape_of(region.get(pos)) if region.contains(pos) else EMPTY

        for d in ALL_DIRECTIONS:
            nxt = d.step(pos)
            if nxt in visited:
                continue

            if not region.contains(nxt):
                # One block of padding around the region, walked as air. Only a real
                # gap lets the light out, otherwise a solid shell block next to the
                # origin would escape and light the whole 3x3x3 stone cube.
                if visited.in_box(nxt) and (pos == origin or can_move(current_shape, EMPTY, d)):
                    visited.add(nxt)
                    generations[nxt] = gen + 1
                    if track_parents:
                        parents[nxt] = pos
                    q.append((nxt, gen + 1))
                continue

            neighbor = region.get(nxt)
            neighbor_air = is_air(neighbor)
            if rainbow and neighbor_air:
                result.recolor[nxt] = gen
            if not neighbor_air and can_see(current_shape, d):
                reachable.add(nxt)

            if pos == origin or can_move(current_shape, catalog.shape_of(neighbor), d):
                visited.add(nxt)
                generations[nxt] = gen + 1
                q.append((nxt, gen + 1))
                if track_parents:
                    parents[nxt] = pos
                    if nxt == inside:
                        LOG.debug("reached %s from the origin after %d step(s)", inside, result.steps)
                        result.leaked = True
                        return result

    return result
