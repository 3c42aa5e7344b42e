import unittest

from lighttight.geometry import (
    DOWN,
    EAST,
    EDGE_MASKS,
    FACE_MASKS,
    FACES,
    NORTH,
    SOUTH,
    UP,
    WEST,
    direction_from_name,
)
from lighttight.litematic import AIR, BlockState
from lighttight.shapes import EMPTY, FULL, CellShape, ShapeCatalog


def stairs(facing, half="bottom", shape="straight"):
    return BlockState.of("minecraft:oak_stairs", {"facing": facing, "half": half, "shape": shape})


def slab(kind):
    return BlockState.of("minecraft:stone_slab", {"type": kind})


class TestGeometry(unittest.TestCase):
    def test_face_masks(self):
        self.assertEqual(FACE_MASKS[DOWN], 0x33)
        self.assertEqual(FACE_MASKS[UP], 0xCC)
        self.assertEqual(FACE_MASKS[NORTH], 0x0F)
        self.assertEqual(FACE_MASKS[SOUTH], 0xF0)
        self.assertEqual(FACE_MASKS[WEST], 0x55)
        self.assertEqual(FACE_MASKS[EAST], 0xAA)

    def test_faces_pair_up_across_the_shared_plane(self):
        for d in (UP, NORTH, EAST):
            for a, b in zip(FACES[d], FACES[d.opposite()]):
                diff = [i for i in range(3) if a[i] != b[i]]
                self.assertEqual(diff, [d.axis])

    def test_edges(self):
        self.assertEqual(EDGE_MASKS[(NORTH, EAST)], 0x0A)
        self.assertEqual(EDGE_MASKS[(UP, SOUTH)], 0xC0)
        self.assertEqual(EDGE_MASKS[(EAST, WEST)], 0)

    def test_direction_names(self):
        self.assertIs(direction_from_name("west"), WEST)
        self.assertIs(WEST.opposite(), EAST)
        self.assertEqual(UP.step((1, 2, 3)), (1, 3, 3))
        with self.assertRaises(ValueError):
            direction_from_name("sideways")


class TestShapeCatalog(unittest.TestCase):
    def setUp(self):
        self.catalog = ShapeCatalog()

    def test_solid_and_air(self):
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:stone")), FULL)
        self.assertEqual(self.catalog.shape_of(AIR), EMPTY)
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:cave_air")), EMPTY)

    def test_unknown_blocks_let_light_through(self):
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:glass")), EMPTY)
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:cobblestone_wall")), EMPTY)
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:torch")), EMPTY)

    def test_slabs(self):
        self.assertEqual(self.catalog.shape_of(slab("bottom")), CellShape(0x33))
        self.assertEqual(self.catalog.shape_of(slab("top")), CellShape(0xCC))
        self.assertEqual(self.catalog.shape_of(slab("double")), FULL)
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:stone_slab")), EMPTY)

    def test_straight_stairs(self):
        self.assertEqual(self.catalog.shape_of(stairs("north")), CellShape(0x33 | 0x0F))
        self.assertEqual(self.catalog.shape_of(stairs("east", half="top")), CellShape(0xCC | 0xAA))

    def test_outer_corner_fills_one_column(self):
        shape = self.catalog.shape_of(stairs("north", shape="outer_right"))
        self.assertEqual(shape, CellShape(0x33 | 0x0A))
        self.assertFalse(shape.face_full(NORTH))
        self.assertFalse(shape.face_full(EAST))

    def test_inner_corner_fills_both_faces(self):
        shape = self.catalog.shape_of(stairs("north", shape="inner_left"))
        self.assertEqual(shape, CellShape(0x33 | 0x0F | 0x55))
        self.assertTrue(shape.face_full(NORTH))
        self.assertTrue(shape.face_full(WEST))

    def test_stairs_turns(self):
        for facing, rot, other in (
            ("north", "right", "east"),
            ("east", "right", "south"),
            ("south", "left", "east"),
            ("west", "left", "south"),
        ):
            shape = self.catalog.shape_of(stairs(facing, shape=f"outer_{rot}"))
            column = EDGE_MASKS[(direction_from_name(facing), direction_from_name(other))]
            self.assertEqual(shape.mask & ~0x33, column & ~0x33, (facing, rot))

    def test_stairs_without_usable_properties(self):
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:oak_stairs")), EMPTY)
        odd = BlockState.of("minecraft:oak_stairs", {"facing": "sideways", "half": "top", "shape": "straight"})
        self.assertEqual(self.catalog.shape_of(odd), CellShape(0xCC))

    def test_shapes_are_cached_per_state(self):
        self.catalog.shape_of(stairs("north"))
        self.catalog.shape_of(stairs("north"))
        self.catalog.shape_of(stairs("south"))
        self.assertEqual(self.catalog.cached_states, 2)

    def test_overrides_win_over_solid_list(self):
        loose = self.catalog.extended(overrides={"minecraft:stone": "empty"})
        self.assertEqual(loose.shape_of(BlockState("minecraft:stone")), EMPTY)
        self.assertEqual(self.catalog.shape_of(BlockState("minecraft:stone")), FULL)

    def test_extended_suffixes_shadow_builtin_ones(self):
        tight = self.catalog.extended(solid=["minecraft:glass"], suffixes=[("_wall", "solid")])
        self.assertEqual(tight.shape_of(BlockState("minecraft:glass")), FULL)
        self.assertEqual(tight.shape_of(BlockState("minecraft:cobblestone_wall")), FULL)

    def test_added_solids_and_suffixes_tighten_special_cases(self):
        tight = self.catalog.extended(solid=["minecraft:lantern"], suffixes=[("_fence", "solid")])
        self.assertEqual(tight.shape_of(BlockState("minecraft:lantern")), FULL)
        self.assertEqual(tight.shape_of(BlockState("minecraft:nether_brick_fence")), FULL)
        self.assertEqual(tight.shape_of(BlockState("minecraft:torch")), EMPTY)
        self.assertNotIn("minecraft:lantern", tight.overrides)

    def test_custom_rule(self):
        catalog = ShapeCatalog(overrides={"minecraft:lantern": "hanging"}, rules={"hanging": lambda b: CellShape(0xCC)})
        self.assertEqual(catalog.shape_of(BlockState("minecraft:lantern")), CellShape(0xCC))

    def test_unknown_rule_name_is_rejected(self):
        with self.assertRaises(ValueError):
            ShapeCatalog(overrides={"minecraft:lantern": "hanging"})
        with self.assertRaises(ValueError):
            ShapeCatalog(suffixes=[("_fence", "fence")])


if __name__ == "__main__":
    unittest.main()
