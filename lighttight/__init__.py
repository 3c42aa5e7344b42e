"""Light-tightness analysis for Litematica schematics."""

from .errors import (
    ConfigError,
    InputNotFound,
    LighttightError,
    MalformedStructure,
    OriginNotFound,
    OutOfBoundsAccess,
    StructureWriteError,
    TraversalBudgetExceeded,
)
from .light import LightResult, PositionIndex, can_move, can_see, traverse
from .litematic import AIR, BlockState, Region, Structure, read_litematic, write_litematic
from .shapes import EMPTY, FULL, CellShape, ShapeCatalog

__version__ = "0.1.0"
