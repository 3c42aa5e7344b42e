from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .shapes import RULES, ShapeCatalog

BLOCK_ID_RE = re.compile(r"^[a-z0-9_.-]+:[a-z0-9_./-]+$")

DEFAULT_ORIGIN_BLOCK = "minecraft:blue_wool"
DEFAULT_MARKER_BLOCK = "minecraft:red_wool"
DEFAULT_REPLACE_PATTERN = "minecraft:lime_wool"
DEFAULT_REPLACEMENT = "minecraft:air"


def _check_block_id(value: str) -> str:
    if not BLOCK_ID_RE.match(value):
        raise ValueError(f"expected a namespaced block id like minecraft:stone, got {value!r}")
    return value


@dataclass(frozen=True)
class Settings:
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        level = os.environ.get("LIGHTTIGHT_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
        if not isinstance(logging.getLevelName(level), int):
            level = "WARNING"
        return cls(log_level=level)


class OptimizeConfig(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    origin_block: str = DEFAULT_ORIGIN_BLOCK
    inside: Optional[Tuple[int, int, int]] = None
    rainbow: bool = False
    keep_boundary: bool = False
    marker_block: str = DEFAULT_MARKER_BLOCK
    max_steps: Optional[int] = Field(default=None, ge=1)
    skip_missing_origin: bool = False

    @field_validator("origin_block", "marker_block")
    @classmethod
    def validate_block(cls, value: str) -> str:
        return _check_block_id(value)


class ShapeTable(BaseModel):
    """JSON shape table layered over (or replacing) the built-in catalog."""

    model_config = ConfigDict(extra="forbid")

    solid: List[str] = Field(default_factory=list)
    overrides: Dict[str, str] = Field(default_factory=dict)
    suffixes: Dict[str, str] = Field(default_factory=dict)
    replace_defaults: bool = False

    @field_validator("solid")
    @classmethod
    def validate_solid(cls, value: List[str]) -> List[str]:
        return [_check_block_id(v) for v in value]

    @field_validator("overrides")
    @classmethod
    def validate_overrides(cls, value: Dict[str, str]) -> Dict[str, str]:
        for name, rule in value.items():
            _check_block_id(name)
            if rule not in RULES:
                raise ValueError(f"unknown shape rule {rule!r} for {name} (known: {', '.join(sorted(RULES))})")
        return value

    @field_validator("suffixes")
    @classmethod
    def validate_suffixes(cls, value: Dict[str, str]) -> Dict[str, str]:
        for suffix, rule in value.items():
            if not suffix:
                raise ValueError("empty suffix")
            if rule not in RULES:
                raise ValueError(f"unknown shape rule {rule!r} for suffix {suffix} (known: {', '.join(sorted(RULES))})")
        return value

    def catalog(self, base: Optional[ShapeCatalog] = None) -> ShapeCatalog:
        if self.replace_defaults:
            return ShapeCatalog(solid=self.solid, overrides=self.overrides, suffixes=tuple(self.suffixes.items()))
        return (base or ShapeCatalog()).extended(
            solid=self.solid,
            overrides=self.overrides,
            suffixes=tuple(self.suffixes.items()),
        )


def load_shape_table(path: Path) -> ShapeTable:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"shape table not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read shape table {path}: {e}") from e
    try:
        return ShapeTable.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid shape table {path}: {e}") from e


def load_shape_catalog(path: Optional[Path]) -> ShapeCatalog:
    if path is None:
        return ShapeCatalog()
    return load_shape_table(path).catalog()
