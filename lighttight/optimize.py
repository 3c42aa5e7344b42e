"""Turn light search results into an output structure.

Each region is searched from its origin block and written to a clone:
unlit blocks are replaced with air, or, when a protected interior position
was given and the light reaches it, the path it took is painted instead.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import OptimizeConfig
from .errors import OriginNotFound
from .geometry import Position
from .light import LightResult, PositionIndex, traverse
from .litematic import AIR, BlockState, Region, Structure, is_air
from .shapes import ShapeCatalog

LOG = logging.getLogger(__name__)

RAINBOW = (
    "minecraft:red_wool",
    "minecraft:red_concrete",
    "minecraft:orange_wool",
    "minecraft:orange_concrete",
    "minecraft:yellow_wool",
    "minecraft:yellow_concrete",
    "minecraft:lime_wool",
    "minecraft:lime_concrete",
    "minecraft:cyan_wool",
    "minecraft:cyan_concrete",
    "minecraft:light_blue_wool",
    "minecraft:light_blue_concrete",
    "minecraft:blue_wool",
    "minecraft:blue_concrete",
    "minecraft:purple_wool",
    "minecraft:purple_concrete",
)


@dataclass
class RegionReport:
    name: str
    origin: Optional[Position] = None
    visited: int = 0
    reachable: int = 0
    removed: int = 0
    recolored: int = 0
    leaked: bool = False
    leak_path: List[Position] = field(default_factory=list)
    skipped: bool = False

    def to_dict(self) -> Dict[str, object]:
        out = asdict(self)
        out["origin"] = list(self.origin) if self.origin else None
        out["leak_path"] = [list(p) for p in self.leak_path]
        return out


def find_origin(region: Region, block_name: str) -> Optional[Position]:
    for pos, block in region.blocks():
        if block.name == block_name:
            return pos
    return None


def on_boundary(region: Region, pos: Position) -> bool:
    lo, hi = region.bounds()
    return any(pos[i] in (lo[i], hi[i]) for i in range(3))


def rainbow_block(generation: int) -> BlockState:
    return BlockState(RAINBOW[generation % len(RAINBOW)])


def apply_recolor(output: Region, result: LightResult) -> int:
    for pos, gen in result.recolor.items():
        output.set(pos, rainbow_block(gen))
    return len(result.recolor)


def apply_pruning(output: Region, source: Region, reachable: PositionIndex, *, keep_boundary: bool = False) -> int:
    removed = 0
    for pos, block in source.blocks():
        if pos in reachable or is_air(block):
            continue
        if keep_boundary and on_boundary(source, pos):
            continue
        LOG.debug("Replacing %s at %s with air", block, pos)
        output.set(pos, AIR)
        removed += 1
    return removed


def apply_leak_path(output: Region, path: List[Position], marker: BlockState) -> int:
    painted = 0
    # The last entry is the origin; padding positions are not part of the region.
    for pos in path[:-1]:
        if output.contains(pos):
            output.set(pos, marker)
            painted += 1
    return painted


def optimize_region(
    region: Region,
    origin: Position,
    catalog: ShapeCatalog,
    config: OptimizeConfig,
) -> Tuple[Region, RegionReport]:
    result = traverse(
        region,
        origin,
        catalog,
        rainbow=config.rainbow,
        inside=config.inside,
        max_steps=config.max_steps,
    )
    output = region.clone()
    report = RegionReport(
        name=region.name,
        origin=origin,
        visited=len(result.visited),
        reachable=len(result.reachable),
    )
    if config.rainbow:
        report.recolored = apply_recolor(output, result)

    if result.leaked:
        report.leaked = True
        report.leak_path = result.backtrace()
        apply_leak_path(output, report.leak_path, BlockState(config.marker_block))
        LOG.warning(
            "Light leaks into %s in region %r (path of %d block(s))",
            config.inside,
            region.name,
            len(report.leak_path) - 1,
        )
        return output, report

    report.removed = apply_pruning(output, region, result.reachable, keep_boundary=config.keep_boundary)
    return output, report


def optimize_structure(
    structure: Structure,
    name: str,
    catalog: Optional[ShapeCatalog] = None,
    config: Optional[OptimizeConfig] = None,
) -> Tuple[Structure, List[RegionReport]]:
    catalog = catalog or ShapeCatalog()
    config = config or OptimizeConfig()
    out = structure.derive(name)
    reports: List[RegionReport] = []

    for region in structure.regions:
        origin = find_origin(region, config.origin_block)
        if origin is None:
            if not config.skip_missing_origin:
                raise OriginNotFound(f"starting block {config.origin_block} not found in region {region.name!r}")
            LOG.warning("Starting block %s not found in region %r, copying it unchanged", config.origin_block, region.name)
            out.regions.append(region.clone())
            reports.append(RegionReport(name=region.name, skipped=True))
            continue

        optimized, report = optimize_region(region, origin, catalog, config)
        LOG.info(
            "region %r: origin=%s visited=%d lit=%d removed=%d",
            region.name,
            origin,
            report.visited,
            report.reachable,
            report.removed,
        )
        out.regions.append(optimized)
        reports.append(report)

    return out, reports
