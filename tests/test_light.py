from __future__ import annotations

import pytest
from builders import ORIGIN, STONE, hollow_box, region_of, solid_cube_with_origin, two_chambers

from lighttight.errors import ConfigError, OriginNotFound, OutOfBoundsAccess, TraversalBudgetExceeded
from lighttight.geometry import ALL_DIRECTIONS, DOWN, EAST, UP, WEST
from lighttight.light import PositionIndex, block_can_move, block_can_see, can_move, can_see, traverse
from lighttight.litematic import AIR, BlockState
from lighttight.optimize import apply_pruning
from lighttight.shapes import EMPTY, FULL, CellShape

BOTTOM_SLAB = CellShape(0x33)
TOP_SLAB = CellShape(0xCC)
NORTH_STAIRS = CellShape(0x3F)


def face_neighbors(pos):
    return {d.step(pos) for d in ALL_DIRECTIONS}


def test_full_blocks_hide_every_face():
    for d in ALL_DIRECTIONS:
        assert not can_see(FULL, d)
        assert can_see(EMPTY, d)
        assert not can_move(EMPTY, FULL, d)
        assert not can_move(FULL, EMPTY, d)
        assert can_move(EMPTY, EMPTY, d)


def test_bottom_slab_next_to_top_slab_is_seen_but_not_entered():
    assert can_see(BOTTOM_SLAB, EAST)
    assert not can_move(BOTTOM_SLAB, TOP_SLAB, EAST)
    assert can_move(BOTTOM_SLAB, BOTTOM_SLAB, EAST)


def test_slabs_stacked_face_to_face_block_movement():
    # A top slab directly under a bottom slab: the shared face is full on both sides.
    assert not can_see(TOP_SLAB, UP)
    assert not can_move(TOP_SLAB, BOTTOM_SLAB, UP)
    # The other way round, the gap between them is open.
    assert can_move(BOTTOM_SLAB, TOP_SLAB, UP)


def test_can_move_is_symmetric():
    shapes = [EMPTY, FULL, BOTTOM_SLAB, TOP_SLAB, NORTH_STAIRS, CellShape(0x3B), CellShape(0x7F)]
    for a in shapes:
        for b in shapes:
            for d in ALL_DIRECTIONS:
                assert can_move(a, b, d) == can_move(b, a, d.opposite())


def test_block_level_wrappers(catalog):
    slab = BlockState.of("minecraft:oak_slab", {"type": "bottom"})
    assert block_can_see(catalog, slab, UP)
    assert not block_can_see(catalog, slab, DOWN)
    assert not block_can_move(catalog, AIR, STONE, WEST)
    assert block_can_move(catalog, slab, slab, WEST)


def test_position_index_covers_padding():
    region = region_of((2, 3, 4))
    index = PositionIndex.padded(region)
    assert (index.lo, index.hi) == ((-1, -1, -1), (2, 3, 4))
    index.add((-1, -1, -1))
    index.add((2, 3, 4))
    index.add((2, 3, 4))
    index.add((0, 1, 2))
    assert len(index) == 3
    assert (-1, -1, -1) in index
    assert (1, 1, 1) not in index
    assert (3, 0, 0) not in index
    assert set(index) == {(-1, -1, -1), (2, 3, 4), (0, 1, 2)}
    with pytest.raises(OutOfBoundsAccess):
        index.add((3, 0, 0))


def test_solid_cube_lights_only_the_six_neighbors(catalog):
    region = solid_cube_with_origin()
    result = traverse(region, (1, 1, 1), catalog)

    assert set(result.reachable) == face_neighbors((1, 1, 1))
    assert set(result.visited) == face_neighbors((1, 1, 1)) | {(1, 1, 1)}
    assert result.max_generation == 1
    assert not result.leaked

    output = region.clone()
    assert apply_pruning(output, region, result.reachable) == 20
    assert output.non_air_count() == 6


def test_hollow_box_lights_inner_faces_of_the_shell(catalog):
    region = region_of((5, 5, 5))
    hollow_box(region, (0, 0, 0), (4, 4, 4))
    result = traverse(region, (2, 2, 2), catalog)

    lit = set(result.reachable)
    assert len(lit) == 54
    # Faces seen from the inside, never edges or corners of the shell.
    for x, y, z in lit:
        assert sum(1 for v in (x, y, z) if v in (0, 4)) == 1
    assert len(result.visited) == 27
    assert all(region.contains(p) for p in result.visited)


def test_origin_block_always_propagates(catalog):
    # A solid origin cannot see out, but the search still steps into its neighbours.
    region = solid_cube_with_origin(STONE)
    result = traverse(region, (1, 1, 1), catalog)
    assert set(result.visited) == face_neighbors((1, 1, 1)) | {(1, 1, 1)}
    assert len(result.reachable) == 0


def test_light_leaves_through_a_gap_and_comes_back(catalog):
    region = two_chambers()
    result = traverse(region, (1, 1, 1), catalog)
    assert (1, 1, -1) in result.visited
    assert (5, 1, 1) in result.visited
    # Walled in on all six sides.
    assert (3, 1, 1) not in result.reachable
    assert (2, 1, 1) in result.reachable
    assert (4, 1, 1) in result.reachable


def test_closed_box_does_not_leak(catalog):
    region = region_of((7, 7, 7))
    hollow_box(region, (1, 1, 1), (5, 5, 5))
    result = traverse(region, (0, 0, 0), catalog, inside=(3, 3, 3))
    assert not result.leaked
    assert result.backtrace() == []
    assert (3, 3, 3) not in result.visited


def test_leak_path_through_a_hole(catalog):
    region = region_of((7, 7, 7))
    hollow_box(region, (1, 1, 1), (5, 5, 5))
    region.set((3, 3, 1), AIR)
    result = traverse(region, (0, 0, 0), catalog, inside=(3, 3, 3))

    assert result.leaked
    path = result.backtrace()
    assert path[0] == (3, 3, 3)
    assert path[-1] == (0, 0, 0)
    assert (3, 3, 1) in path
    assert len(path) == result.generations[(3, 3, 3)] + 1
    for a, b in zip(path, path[1:]):
        assert sum(abs(a[i] - b[i]) for i in range(3)) == 1


def test_leak_path_may_cross_the_padding(catalog):
    region = two_chambers()
    result = traverse(region, (1, 1, 1), catalog, inside=(5, 1, 1))

    assert result.leaked
    path = result.backtrace()
    assert len(path) == 9
    assert path[:3] == [(5, 1, 1), (5, 1, 0), (5, 1, -1)]
    assert path[-3:] == [(1, 1, -1), (1, 1, 0), (1, 1, 1)]
    for a, b in zip(path, path[1:]):
        assert sum(abs(a[i] - b[i]) for i in range(3)) == 1


def test_rainbow_records_the_generation_air_was_seen_from(catalog):
    region = region_of((5, 1, 1))
    region.set((0, 0, 0), ORIGIN)
    result = traverse(region, (0, 0, 0), catalog, rainbow=True)
    assert result.recolor == {(1, 0, 0): 0, (2, 0, 0): 1, (3, 0, 0): 2, (4, 0, 0): 3}


def test_traversal_does_not_touch_the_region(catalog):
    region = two_chambers()
    before = list(region.blocks())
    traverse(region, (1, 1, 1), catalog, rainbow=True, inside=(5, 1, 1))
    assert list(region.blocks()) == before


def test_pruned_region_is_stable(catalog):
    region = region_of((5, 5, 5))
    hollow_box(region, (0, 0, 0), (4, 4, 4))
    fill = region.clone()
    first = traverse(fill, (2, 2, 2), catalog)
    apply_pruning(fill, region, first.reachable)

    second = traverse(fill, (2, 2, 2), catalog)
    assert set(second.reachable) == set(first.reachable)
    assert apply_pruning(fill.clone(), fill, second.reachable) == 0


def test_origin_outside_region(catalog):
    with pytest.raises(OriginNotFound):
        traverse(region_of((2, 2, 2)), (2, 0, 0), catalog)


def test_leak_target_must_be_inside_and_distinct(catalog):
    region = region_of((3, 3, 3))
    with pytest.raises(ConfigError):
        traverse(region, (0, 0, 0), catalog, inside=(5, 5, 5))
    with pytest.raises(ConfigError):
        traverse(region, (0, 0, 0), catalog, inside=(0, 0, 0))


def test_step_budget(catalog):
    with pytest.raises(TraversalBudgetExceeded):
        traverse(region_of((5, 5, 5)), (0, 0, 0), catalog, max_steps=3)
    result = traverse(region_of((2, 1, 1)), (0, 0, 0), catalog, max_steps=1000)
    assert result.steps > 0
