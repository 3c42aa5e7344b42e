"""Octant occupancy of block states.

Which of a block's 8 octants are filled decides whether light can leave it
through a face and whether it can pass into a neighbour. The mapping from
block state to shape is a table of named rules so new block families can be
described without touching the traversal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .geometry import (
    ALL_OCTANTS,
    DOWN,
    EDGE_MASKS,
    FACE_MASKS,
    STAIRS_TURN,
    UP,
    Direction,
    Octant,
    direction_from_name,
    octant_bit,
)
from .litematic import BlockState, is_air

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellShape:
    mask: int = 0

    def occupies(self, o: Octant) -> bool:
        return bool(self.mask & octant_bit(o))

    def face_mask(self, d: Direction) -> int:
        return self.mask & FACE_MASKS[d]

    def face_full(self, d: Direction) -> bool:
        return self.face_mask(d) == FACE_MASKS[d]

    def __str__(self) -> str:
        return "".join("#" if self.occupies(o) else "." for o in ALL_OCTANTS)


EMPTY = CellShape(0)
FULL = CellShape(0xFF)

ShapeRule = Callable[[BlockState], CellShape]


def solid_rule(block: BlockState) -> CellShape:
    return FULL


def empty_rule(block: BlockState) -> CellShape:
    return EMPTY


def _maybe_direction(name: str) -> Optional[Direction]:
    try:
        return direction_from_name(name)
    except ValueError:
        return None


def stairs_rule(block: BlockState) -> CellShape:
    """Half slab plus a step.

    Straight stairs fill the face they point to; outer corners only the edge
    column between ``facing`` and the turn side. Inner corners fill both
    faces, which over-fills the real L-shaped step; treat it as an
    approximation on the blocking side.
    """
    if not block.properties:
        return EMPTY
    shape = block.get("shape")
    half = block.get("half")
    facing = block.get("facing")

    mask = 0
    if half == "top":
        mask |= FACE_MASKS[UP]
    elif half == "bottom":
        mask |= FACE_MASKS[DOWN]

    side_a = _maybe_direction(facing)
    if side_a is None:
        LOG.debug("Unknown stairs facing %r in %s", facing, block)
        return CellShape(mask)

    if shape == "straight":
        mask |= FACE_MASKS[side_a]
    elif shape.startswith("outer_") or shape.startswith("inner_"):
        mode, _, rot = shape.partition("_")
        side_b = STAIRS_TURN.get((facing, rot))
        if side_b is None:
            LOG.debug("Unexpected stairs properties facing=%s shape=%s", facing, shape)
        elif mode == "outer":
            mask |= EDGE_MASKS[(side_a, side_b)]
        else:
            mask |= FACE_MASKS[side_a] | FACE_MASKS[side_b]
    return CellShape(mask)


def slab_rule(block: BlockState) -> CellShape:
    slab_type = block.get("type")
    if slab_type == "double":
        return FULL
    if slab_type == "top":
        return CellShape(FACE_MASKS[UP])
    if slab_type == "bottom":
        return CellShape(FACE_MASKS[DOWN])
    return EMPTY


RULES: Dict[str, ShapeRule] = {
    "solid": solid_rule,
    "empty": empty_rule,
    "stairs": stairs_rule,
    "slab": slab_rule,
}

DEFAULT_SOLID_BLOCKS = frozenset(
    {
        "minecraft:andesite",
        "minecraft:blue_concrete",
        "minecraft:bone_block",
        "minecraft:calcite",
        "minecraft:chiseled_quartz_block",
        "minecraft:cobblestone",
        "minecraft:copper_block",
        "minecraft:deepslate_bricks",
        "minecraft:deepslate_tiles",
        "minecraft:diorite",
        "minecraft:dirt",
        "minecraft:glowstone",
        "minecraft:gold_block",
        "minecraft:lapis_block",
        "minecraft:lime_wool",
        "minecraft:mushroom_stem",
        "minecraft:netherrack",
        "minecraft:oak_wood",
        "minecraft:ochre_froglight",
        "minecraft:polished_andesite",
        "minecraft:polished_diorite",
        "minecraft:quartz_block",
        "minecraft:quartz_bricks",
        "minecraft:quartz_pillar",
        "minecraft:raw_gold_block",
        "minecraft:red_nether_bricks",
        "minecraft:sea_lantern",
        "minecraft:smooth_quartz",
        "minecraft:smooth_stone",
        "minecraft:spruce_wood",
        "minecraft:stone",
        "minecraft:stone_bricks",
        "minecraft:tuff",
        "minecraft:yellow_glazed_terracotta",
    }
)

# Blocks with real partial geometry that are still modelled as letting light
# through everywhere. Listed so a shape table can tighten them one by one.
DEFAULT_OVERRIDES: Dict[str, str] = {
    "minecraft:campfire": "empty",
    "minecraft:fire": "empty",
    "minecraft:iron_trapdoor": "empty",
    "minecraft:lantern": "empty",
    "minecraft:nether_brick_fence": "empty",
    "minecraft:observer": "empty",
    "minecraft:spruce_trapdoor": "empty",
    "minecraft:spruce_wall_sign": "empty",
    "minecraft:torch": "empty",
    "minecraft:water": "empty",
}

DEFAULT_SUFFIXES: Tuple[Tuple[str, str], ...] = (
    ("_stairs", "stairs"),
    ("_slab", "slab"),
    ("_wall", "empty"),
)


class ShapeCatalog:
    """Block state -> CellShape, memoized per distinct state."""

    def __init__(
        self,
        *,
        solid: Iterable[str] = DEFAULT_SOLID_BLOCKS,
        overrides: Optional[Mapping[str, str]] = None,
        suffixes: Sequence[Tuple[str, str]] = DEFAULT_SUFFIXES,
        rules: Optional[Mapping[str, ShapeRule]] = None,
    ):
        self.rules: Dict[str, ShapeRule] = dict(RULES)
        if rules:
            self.rules.update(rules)
        self.solid = frozenset(solid)
        self.overrides: Dict[str, str] = dict(DEFAULT_OVERRIDES if overrides is None else overrides)
        self.suffixes: Tuple[Tuple[str, str], ...] = tuple(suffixes)
        for rule in list(self.overrides.values()) + [r for _s, r in self.suffixes]:
            if rule not in self.rules:
                raise ValueError(f"unknown shape rule {rule!r} (known: {', '.join(sorted(self.rules))})")
        self._cache: Dict[BlockState, CellShape] = {}

    def rule_for(self, name: str) -> str:
        rule = self.overrides.get(name)
        if rule is not None:
            return rule
        if name in self.solid:
            return "solid"
        for suffix, rule in self.suffixes:
            if name.endswith(suffix):
                return rule
        return "empty"

    def shape_of(self, block: BlockState) -> CellShape:
        shape = self._cache.get(block)
        if shape is None:
            shape = EMPTY if is_air(block) else self.rules[self.rule_for(block.name)](block)
            self._cache[block] = shape
        return shape

    @property
    def cached_states(self) -> int:
        return len(self._cache)

    def extended(
        self,
        *,
        solid: Iterable[str] = (),
        overrides: Optional[Mapping[str, str]] = None,
        suffixes: Sequence[Tuple[str, str]] = (),
    ) -> "ShapeCatalog":
        """New catalog with extra entries layered over this one's.

        Inherited overrides give way to a name added to ``solid`` or matched
        by an added suffix, so a table can tighten the special-case blocks.
        """
        solid = frozenset(solid)
        suffixes = tuple(suffixes)
        merged = {
            name: rule
            for name, rule in self.overrides.items()
            if name not in solid and not any(name.endswith(s) for s, _r in suffixes)
        }
        merged.update(overrides or {})
        # Extra suffixes are checked first so they can shadow the built-in families.
        return ShapeCatalog(
            solid=self.solid | solid,
            overrides=merged,
            suffixes=suffixes + self.suffixes,
            rules=self.rules,
        )
