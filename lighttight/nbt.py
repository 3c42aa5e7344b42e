"""Minimal gzipped NBT reader/writer.

Reading returns plain Python values: compounds are dicts, lists are
``NbtList`` (so the element tag survives an empty list), arrays are lists
of ints and strings are ``str``. Writing is explicit about tag types since
Python ints do not say whether they were an Int or a Long on disk; a typed
read keeps the tags next to the values so opaque data (block entities,
entities) can be copied through ``encode`` untouched.
"""

from __future__ import annotations

import gzip
import struct
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List


TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12


class NBTError(Exception):
    pass


@dataclass
class NbtList:
    inner_tag: int
    items: List[Any] = field(default_factory=list)


class _Buf:
    __slots__ = ("b", "o")

    def __init__(self, b: bytes):
        self.b = b
        self.o = 0

    def read_bytes(self, n: int) -> bytes:
        if self.o + n > len(self.b):
            raise NBTError("unexpected EOF")
        v = self.b[self.o : self.o + n]
        self.o += n
        return v

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_i8(self) -> int:
        return struct.unpack(">b", self.read_bytes(1))[0]

    def read_i16(self) -> int:
        return struct.unpack(">h", self.read_bytes(2))[0]

    def read_i32(self) -> int:
        return struct.unpack(">i", self.read_bytes(4))[0]

    def read_i64(self) -> int:
        return struct.unpack(">q", self.read_bytes(8))[0]

    def read_string(self) -> str:
        ln = struct.unpack(">H", self.read_bytes(2))[0]
        return self.read_bytes(ln).decode("utf-8", errors="strict")


def _read_tag_payload(tag: int, buf: _Buf, typed: bool = False) -> Any:
    if tag == TAG_BYTE:
        return buf.read_i8()
    if tag == TAG_SHORT:
        return buf.read_i16()
    if tag == TAG_INT:
        return buf.read_i32()
    if tag == TAG_LONG:
        return buf.read_i64()
    if tag == TAG_FLOAT:
        return struct.unpack(">f", buf.read_bytes(4))[0]
    if tag == TAG_DOUBLE:
        return struct.unpack(">d", buf.read_bytes(8))[0]
    if tag == TAG_BYTE_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative byte array length")
        return buf.read_bytes(ln)
    if tag == TAG_STRING:
        return buf.read_string()
    if tag == TAG_LIST:
        inner = buf.read_u8()
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative list length")
        return NbtList(inner_tag=inner, items=[_read_tag_payload(inner, buf, typed) for _ in range(ln)])
    if tag == TAG_COMPOUND:
        out: Dict[str, Any] = {}
        while True:
            t = buf.read_u8()
            if t == TAG_END:
                return out
            name = buf.read_string()
            value = _read_tag_payload(t, buf, typed)
            out[name] = (t, value) if typed else value
    if tag == TAG_INT_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative int array length")
        return list(struct.unpack(f">{ln}i", buf.read_bytes(4 * ln)))
    if tag == TAG_LONG_ARRAY:
        ln = buf.read_i32()
        if ln < 0:
            raise NBTError("negative long array length")
        return list(struct.unpack(f">{ln}q", buf.read_bytes(8 * ln)))
    raise NBTError(f"unknown tag {tag}")


def loads(raw: bytes, *, typed: bool = False) -> Dict[str, Any]:
    """Decode a (possibly gzipped) NBT file into its root compound.

    With ``typed`` set, compound entries are ``(tag, value)`` pairs so the
    tree can be written back unchanged with ``encode``.
    """
    try:
        raw = gzip.decompress(raw)
    except (OSError, EOFError, zlib.error):
        pass
    buf = _Buf(raw)
    t = buf.read_u8()
    if t != TAG_COMPOUND:
        raise NBTError(f"unexpected root tag: {t} (expected compound)")
    _ = buf.read_string()  # root name (often empty)
    root = _read_tag_payload(TAG_COMPOUND, buf, typed)
    if not isinstance(root, dict):
        raise NBTError("root compound parse failed")
    return root


def untag(tag: int, value: Any) -> Any:
    """Plain view of a typed value, as ``loads`` returns it without ``typed``."""
    if tag == TAG_COMPOUND:
        return {k: untag(t, v) for k, (t, v) in value.items()}
    if tag == TAG_LIST:
        return NbtList(value.inner_tag, [untag(value.inner_tag, v) for v in value.items])
    return value


# --- Writer -----------------------------------------------------------------
#
# Builders return (tag_id, payload) pairs; compound() and list_of() nest them.


def _enc_string(s: str) -> bytes:
    b = s.encode("utf-8", errors="strict")
    if len(b) > 65535:
        raise NBTError("string too long for NBT")
    return struct.pack(">H", len(b)) + b


def byte(v: int):
    return TAG_BYTE, struct.pack(">b", int(v))


def short(v: int):
    return TAG_SHORT, struct.pack(">h", int(v))


def int_(v: int):
    return TAG_INT, struct.pack(">i", int(v))


def long(v: int):
    return TAG_LONG, struct.pack(">q", int(v))


def float_(v: float):
    return TAG_FLOAT, struct.pack(">f", float(v))


def double(v: float):
    return TAG_DOUBLE, struct.pack(">d", float(v))


def byte_array(vals: bytes):
    return TAG_BYTE_ARRAY, struct.pack(">i", len(vals)) + bytes(vals)


def string(s: str):
    return TAG_STRING, _enc_string(s)


def int_array(vals: List[int]):
    return TAG_INT_ARRAY, struct.pack(f">i{len(vals)}i", len(vals), *vals)


def long_array(vals: List[int]):
    # Accept unsigned 64-bit values too; NBT stores them two's complement.
    signed = [v - (1 << 64) if v >= (1 << 63) else v for v in vals]
    return TAG_LONG_ARRAY, struct.pack(f">i{len(signed)}q", len(signed), *signed)


def compound(children: Dict[str, tuple]):
    parts = [bytes([t]) + _enc_string(name) + payload for name, (t, payload) in children.items()]
    parts.append(bytes([TAG_END]))
    return TAG_COMPOUND, b"".join(parts)


def list_of(inner_tag: int, items: Iterable[tuple]):
    payloads = []
    for t, payload in items:
        if t != inner_tag:
            raise NBTError(f"list item tag {t} does not match list tag {inner_tag}")
        payloads.append(payload)
    return TAG_LIST, bytes([inner_tag]) + struct.pack(">i", len(payloads)) + b"".join(payloads)


def dumps(root: tuple, *, compress: bool = True) -> bytes:
    tag, payload = root
    if tag != TAG_COMPOUND:
        raise NBTError("root NBT payload must be compound")
    raw = bytes([TAG_COMPOUND]) + _enc_string("") + payload
    return gzip.compress(raw) if compress else raw


_SCALARS = {
    TAG_BYTE: byte,
    TAG_SHORT: short,
    TAG_INT: int_,
    TAG_LONG: long,
    TAG_FLOAT: float_,
    TAG_DOUBLE: double,
    TAG_BYTE_ARRAY: byte_array,
    TAG_STRING: string,
    TAG_INT_ARRAY: int_array,
    TAG_LONG_ARRAY: long_array,
}


def encode(tag: int, value: Any):
    """Builder pair for a typed value read with ``loads(..., typed=True)``."""
    if tag == TAG_COMPOUND:
        return compound({k: encode(t, v) for k, (t, v) in value.items()})
    if tag == TAG_LIST:
        return list_of(value.inner_tag, [encode(value.inner_tag, v) for v in value.items])
    builder = _SCALARS.get(tag)
    if builder is None:
        raise NBTError(f"cannot encode tag {tag}")
    return builder(value)
