"""Litematica ``.litematic`` schematics: block states, regions and structures.

A structure holds one or more named regions. Each region stores its blocks
as indices into a palette of block states, packed into a long array the way
Litematica's bit array does it (entries may straddle two longs, unlike the
vanilla chunk format which pads every long).
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from . import nbt
from .errors import InputNotFound, MalformedStructure, OutOfBoundsAccess, StructureWriteError

LOG = logging.getLogger(__name__)

Position = Tuple[int, int, int]

DATA_VERSION_1_21_1 = 3955
SCHEMATIC_VERSION = 7
SCHEMATIC_SUB_VERSION = 1

AIR_BLOCKS = {"minecraft:air", "minecraft:cave_air", "minecraft:void_air"}
STATE_RE = re.compile(r"^(?P<name>[a-z0-9_./-]+:[a-z0-9_./-]+)(?:\[(?P<props>.*)\])?$")


@dataclass(frozen=True)
class BlockState:
    name: str
    properties: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, name: str, props: Optional[Mapping[str, str]] = None) -> "BlockState":
        if not props:
            return cls(name)
        return cls(name, tuple(sorted((str(k), str(v)) for k, v in props.items())))

    @classmethod
    def parse(cls, state: str) -> "BlockState":
        """Parse the command form ``minecraft:oak_stairs[facing=east,half=top]``."""
        m = STATE_RE.match(state.strip())
        if not m:
            raise ValueError(f"invalid block state syntax: {state}")
        props: Dict[str, str] = {}
        props_raw = m.group("props")
        if props_raw:
            for segment in props_raw.split(","):
                segment = segment.strip()
                if not segment:
                    continue
                if "=" not in segment:
                    raise ValueError(f"invalid property segment '{segment}' in state '{state}'")
                k, v = segment.split("=", 1)
                props[k.strip()] = v.strip()
        return cls.of(m.group("name"), props)

    def get(self, key: str, default: str = "") -> str:
        for k, v in self.properties:
            if k == key:
                return v
        return default

    def __str__(self) -> str:
        if not self.properties:
            return self.name
        return f"{self.name}[{','.join(f'{k}={v}' for k, v in self.properties)}]"


AIR = BlockState("minecraft:air")


def is_air(block: BlockState) -> bool:
    return block.name in AIR_BLOCKS


class Region:
    """A bounded box of block states in region-local coordinates.

    ``size`` keeps Litematica's sign convention (a negative component means
    the region extends towards negative world coordinates from
    ``position``); local coordinates always run from 0 to ``abs(size) - 1``.
    """

    def __init__(self, name: str, size: Position, *, position: Position = (0, 0, 0)):
        if 0 in size:
            raise ValueError(f"region {name!r} has an empty size {size}")
        self.name = name
        self.position = tuple(position)
        self.size = tuple(size)
        self.sx, self.sy, self.sz = (abs(v) for v in size)
        self.palette: List[BlockState] = [AIR]
        self._palette_idx: Dict[BlockState, int] = {AIR: 0}
        self._blocks: List[int] = [0] * (self.sx * self.sy * self.sz)
        # Typed NBT compounds (see nbt.loads(typed=True)), copied through unchanged.
        self.tile_entities: Dict[Position, Dict[str, Any]] = {}
        self.entities: List[Dict[str, Any]] = []
        self.pending_block_ticks: List[Dict[str, Any]] = []
        self.pending_fluid_ticks: List[Dict[str, Any]] = []

    @property
    def volume(self) -> int:
        return len(self._blocks)

    def bounds(self) -> Tuple[Position, Position]:
        return (0, 0, 0), (self.sx - 1, self.sy - 1, self.sz - 1)

    def world_min(self) -> Position:
        return tuple(p + s + 1 if s < 0 else p for p, s in zip(self.position, self.size))  # type: ignore[return-value]

    def contains(self, pos: Position) -> bool:
        x, y, z = pos
        return 0 <= x < self.sx and 0 <= y < self.sy and 0 <= z < self.sz

    def _index(self, pos: Position) -> int:
        if not self.contains(pos):
            raise OutOfBoundsAccess(f"{pos} is outside region {self.name!r} of size {self.size}")
        x, y, z = pos
        return (y * self.sz + z) * self.sx + x

    def _palette_id(self, block: BlockState) -> int:
        i = self._palette_idx.get(block)
        if i is None:
            i = len(self.palette)
            self._palette_idx[block] = i
            self.palette.append(block)
        return i

    def get(self, pos: Position) -> BlockState:
        return self.palette[self._blocks[self._index(pos)]]

    def set(self, pos: Position, block: BlockState) -> None:
        i = self._index(pos)
        pi = self._palette_id(block)
        if self._blocks[i] != pi:
            # A block entity belongs to the block it was saved with.
            self.tile_entities.pop(pos, None)
        self._blocks[i] = pi

    def blocks(self) -> Iterator[Tuple[Position, BlockState]]:
        sx, sz = self.sx, self.sz
        palette = self.palette
        for i, pi in enumerate(self._blocks):
            x = i % sx
            z = (i // sx) % sz
            y = i // (sx * sz)
            yield (x, y, z), palette[pi]

    def non_air_count(self) -> int:
        air_ids = {i for i, b in enumerate(self.palette) if is_air(b)}
        return sum(1 for pi in self._blocks if pi not in air_ids)

    def clone(self, name: Optional[str] = None) -> "Region":
        out = Region(name or self.name, self.size, position=self.position)
        out.palette = list(self.palette)
        out._palette_idx = dict(self._palette_idx)
        out._blocks = list(self._blocks)
        out.tile_entities = dict(self.tile_entities)
        out.entities = list(self.entities)
        out.pending_block_ticks = list(self.pending_block_ticks)
        out.pending_fluid_ticks = list(self.pending_fluid_ticks)
        return out

    def packed(self) -> Tuple[List[BlockState], List[int]]:
        """Palette trimmed to the states in use (air first) and matching indices."""
        used = sorted(set(self._blocks) | {0})
        remap = {old: new for new, old in enumerate(used)}
        return [self.palette[i] for i in used], [remap[pi] for pi in self._blocks]

    @classmethod
    def from_palette(
        cls, name: str, size: Position, position: Position, palette: List[BlockState], indices: List[int]
    ) -> "Region":
        region = cls(name, size, position=position)
        if len(indices) != region.volume:
            raise MalformedStructure(f"region {name!r}: {len(indices)} block entries for volume {region.volume}")
        ids = [region._palette_id(b) for b in palette]
        try:
            region._blocks = [ids[pi] for pi in indices]
        except IndexError as e:
            raise MalformedStructure(f"region {name!r}: palette index out of range") from e
        return region


@dataclass
class Structure:
    name: str
    description: str = ""
    author: str = ""
    regions: List[Region] = field(default_factory=list)
    data_version: int = DATA_VERSION_1_21_1
    version: int = SCHEMATIC_VERSION
    sub_version: Optional[int] = SCHEMATIC_SUB_VERSION
    time_created: Optional[int] = None

    def derive(self, name: str) -> "Structure":
        """Empty structure carrying this one's metadata under a new name."""
        return Structure(
            name=name,
            description=self.description,
            author=self.author,
            data_version=self.data_version,
            version=self.version,
            sub_version=self.sub_version,
            time_created=self.time_created,
        )


# --- Bit packing ------------------------------------------------------------


def bits_for_palette(palette_len: int) -> int:
    return max(2, (palette_len - 1).bit_length())


def pack_indices(indices: List[int], bits: int) -> List[int]:
    mask = (1 << bits) - 1
    out = [0] * ((len(indices) * bits + 63) // 64)
    for i, v in enumerate(indices):
        start = i * bits
        li = start >> 6
        off = start & 63
        out[li] |= (v & mask) << off
        spill = off + bits - 64
        if spill > 0:
            out[li + 1] |= (v & mask) >> (bits - spill)
    return [v & 0xFFFFFFFFFFFFFFFF for v in out]


def unpack_indices(longs: List[int], bits: int, count: int) -> List[int]:
    if len(longs) * 64 < count * bits:
        raise MalformedStructure(f"BlockStates too short: {len(longs)} longs for {count} entries of {bits} bits")
    data = [v & 0xFFFFFFFFFFFFFFFF for v in longs]
    mask = (1 << bits) - 1
    out = [0] * count
    for i in range(count):
        start = i * bits
        li = start >> 6
        off = start & 63
        v = data[li] >> off
        if off + bits > 64:
            v |= data[li + 1] << (64 - off)
        out[i] = v & mask
    return out


# --- Reading ----------------------------------------------------------------


def _xyz(value, context: str) -> Position:
    if not isinstance(value, dict) or not all(isinstance(value.get(k), int) for k in "xyz"):
        raise MalformedStructure(f"{context}: expected compound with integer x/y/z")
    return int(value["x"]), int(value["y"]), int(value["z"])


def _list_items(value, context: str) -> list:
    if isinstance(value, nbt.NbtList):
        return value.items
    if value is None:
        return []
    raise MalformedStructure(f"{context}: expected a list")


def _block_state_from_nbt(entry, context: str) -> BlockState:
    if not isinstance(entry, dict) or not isinstance(entry.get("Name"), str):
        raise MalformedStructure(f"{context}: palette entry without Name")
    props = entry.get("Properties") or {}
    if not isinstance(props, dict):
        raise MalformedStructure(f"{context}: Properties must be a compound")
    return BlockState.of(entry["Name"], {str(k): str(v) for k, v in props.items()})


def _typed_compounds(typed: Dict[str, Any], key: str, context: str) -> List[Dict[str, Any]]:
    entry = typed.get(key)
    if entry is None:
        return []
    tag, value = entry
    if tag != nbt.TAG_LIST or value.inner_tag not in (nbt.TAG_COMPOUND, nbt.TAG_END):
        raise MalformedStructure(f"{context}: {key} must be a list of compounds")
    return list(value.items)


def _typed_pos(entry: Dict[str, Any], context: str) -> Position:
    coords = [entry.get(k) for k in "xyz"]
    if any(c is None or c[0] != nbt.TAG_INT for c in coords):
        raise MalformedStructure(f"{context}: block entity without integer x/y/z")
    return coords[0][1], coords[1][1], coords[2][1]


def _region_from_nbt(name: str, typed: Dict[str, Any]) -> Region:
    context = f"region {name!r}"
    data = nbt.untag(nbt.TAG_COMPOUND, typed)
    position = _xyz(data.get("Position"), f"{context} Position")
    size = _xyz(data.get("Size"), f"{context} Size")
    if 0 in size:
        raise MalformedStructure(f"{context}: empty size {size}")
    palette = [_block_state_from_nbt(e, context) for e in _list_items(data.get("BlockStatePalette"), context)]
    if not palette:
        raise MalformedStructure(f"{context}: empty BlockStatePalette")
    longs = data.get("BlockStates")
    if not isinstance(longs, list):
        raise MalformedStructure(f"{context}: missing BlockStates long array")
    volume = abs(size[0]) * abs(size[1]) * abs(size[2])
    indices = unpack_indices(longs, bits_for_palette(len(palette)), volume)
    region = Region.from_palette(name, size, position, palette, indices)

    for entry in _typed_compounds(typed, "TileEntities", context):
        region.tile_entities[_typed_pos(entry, context)] = entry
    region.entities = _typed_compounds(typed, "Entities", context)
    region.pending_block_ticks = _typed_compounds(typed, "PendingBlockTicks", context)
    region.pending_fluid_ticks = _typed_compounds(typed, "PendingFluidTicks", context)
    return region


def parse_litematic(raw: bytes, *, source: str = "<bytes>") -> Structure:
    try:
        typed_root = nbt.loads(raw, typed=True)
    except (nbt.NBTError, UnicodeDecodeError) as e:
        raise MalformedStructure(f"{source}: {e}") from e
    root = nbt.untag(nbt.TAG_COMPOUND, typed_root)

    meta = root.get("Metadata")
    regions = root.get("Regions")
    if not isinstance(meta, dict) or not isinstance(regions, dict):
        raise MalformedStructure(f"{source}: not a litematic (missing Metadata/Regions)")

    structure = Structure(
        name=str(meta.get("Name") or ""),
        description=str(meta.get("Description") or ""),
        author=str(meta.get("Author") or ""),
        data_version=int(root.get("MinecraftDataVersion") or DATA_VERSION_1_21_1),
        version=int(root.get("Version") or SCHEMATIC_VERSION),
        sub_version=root.get("SubVersion") if isinstance(root.get("SubVersion"), int) else None,
        time_created=meta.get("TimeCreated") if isinstance(meta.get("TimeCreated"), int) else None,
    )
    for name, (tag, typed) in typed_root["Regions"][1].items():
        if tag != nbt.TAG_COMPOUND:
            raise MalformedStructure(f"{source}: region {name!r}: expected compound")
        structure.regions.append(_region_from_nbt(name, typed))
    return structure


def read_litematic(path: Path) -> Structure:
    LOG.debug("Reading schematic %s", path)
    if not path.is_file():
        raise InputNotFound(f"schematic not found: {path}")
    structure = parse_litematic(path.read_bytes(), source=str(path))
    LOG.debug("Read %d region(s) from %s", len(structure.regions), path)
    return structure


# --- Writing ----------------------------------------------------------------


def _xyz_nbt(v: Position):
    return nbt.compound({"x": nbt.int_(v[0]), "y": nbt.int_(v[1]), "z": nbt.int_(v[2])})


def _palette_entry(block: BlockState):
    kids = {"Name": nbt.string(block.name)}
    if block.properties:
        kids["Properties"] = nbt.compound({k: nbt.string(v) for k, v in block.properties})
    return nbt.compound(kids)


def _typed_list(entries: Iterable[Dict[str, Any]]):
    return nbt.list_of(nbt.TAG_COMPOUND, (nbt.encode(nbt.TAG_COMPOUND, e) for e in entries))


def _region_nbt(region: Region):
    palette, indices = region.packed()
    return nbt.compound(
        {
            "Position": _xyz_nbt(region.position),
            "Size": _xyz_nbt(region.size),
            "BlockStatePalette": nbt.list_of(nbt.TAG_COMPOUND, (_palette_entry(b) for b in palette)),
            "BlockStates": nbt.long_array(pack_indices(indices, bits_for_palette(len(palette)))),
            "TileEntities": _typed_list(region.tile_entities.values()),
            "Entities": _typed_list(region.entities),
            "PendingBlockTicks": _typed_list(region.pending_block_ticks),
            "PendingFluidTicks": _typed_list(region.pending_fluid_ticks),
        }
    )


def _enclosing_size(regions: List[Region]) -> Position:
    if not regions:
        return 0, 0, 0
    mins = [r.world_min() for r in regions]
    maxs = [(m[0] + r.sx - 1, m[1] + r.sy - 1, m[2] + r.sz - 1) for m, r in zip(mins, regions)]
    return tuple(max(mx[i] for mx in maxs) - min(mn[i] for mn in mins) + 1 for i in range(3))  # type: ignore[return-value]


def encode_litematic(structure: Structure, *, now_ms: Optional[int] = None) -> bytes:
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    names = [r.name for r in structure.regions]
    if len(set(names)) != len(names):
        raise StructureWriteError(f"duplicate region names: {names}")

    metadata = nbt.compound(
        {
            "Name": nbt.string(structure.name),
            "Author": nbt.string(structure.author),
            "Description": nbt.string(structure.description),
            "RegionCount": nbt.int_(len(structure.regions)),
            "TotalBlocks": nbt.int_(sum(r.non_air_count() for r in structure.regions)),
            "TotalVolume": nbt.int_(sum(r.volume for r in structure.regions)),
            "EnclosingSize": _xyz_nbt(_enclosing_size(structure.regions)),
            "TimeCreated": nbt.long(structure.time_created if structure.time_created is not None else now_ms),
            "TimeModified": nbt.long(now_ms),
        }
    )
    root = {
        "MinecraftDataVersion": nbt.int_(structure.data_version),
        "Version": nbt.int_(structure.version),
    }
    if structure.sub_version is not None:
        root["SubVersion"] = nbt.int_(structure.sub_version)
    root["Metadata"] = metadata
    root["Regions"] = nbt.compound({r.name: _region_nbt(r) for r in structure.regions})
    return nbt.dumps(nbt.compound(root))


def write_litematic(structure: Structure, path: Path) -> None:
    # Encode fully before touching the filesystem so a failure never leaves a partial file.
    payload = encode_litematic(structure)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    except OSError as e:
        raise StructureWriteError(f"cannot write {path}: {e}") from e
    LOG.debug("Wrote %d region(s) to %s", len(structure.regions), path)
