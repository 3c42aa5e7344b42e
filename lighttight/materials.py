from __future__ import annotations

import collections
import logging
from typing import List, Tuple

from .litematic import BlockState, Structure, is_air

LOG = logging.getLogger(__name__)


def material_name(block: BlockState) -> str:
    # Wall signs are crafted as plain signs.
    if block.name.endswith("_wall_sign"):
        return block.name.replace("_wall_sign", "_sign")
    return block.name


def count_materials(structure: Structure) -> collections.Counter:
    counter: collections.Counter = collections.Counter()
    for region in structure.regions:
        for _pos, block in region.blocks():
            if is_air(block):
                continue
            counter[material_name(block)] += 1
    return counter


def sorted_materials(counter: collections.Counter) -> List[Tuple[str, int]]:
    return sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))


def format_materials(counter: collections.Counter) -> str:
    lines = ["====== materials ======="]
    lines.extend(f"{name} {count}" for name, count in sorted_materials(counter))
    return "\n".join(lines)


def replace_blocks(structure: Structure, name: str, pattern: str, replacement: BlockState) -> Tuple[Structure, int]:
    """Copy of ``structure`` with every block whose id contains ``pattern`` swapped out."""
    out = structure.derive(name)
    replaced = 0
    for region in structure.regions:
        clone = region.clone()
        for pos, block in region.blocks():
            if pattern in block.name:
                clone.set(pos, replacement)
                replaced += 1
        out.regions.append(clone)
    LOG.info("Replaced %d block(s) matching %r with %s", replaced, pattern, replacement)
    return out, replaced
