from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

from lighttight.litematic import Structure, write_litematic  # noqa: E402
from lighttight.shapes import ShapeCatalog  # noqa: E402


@pytest.fixture()
def catalog() -> ShapeCatalog:
    return ShapeCatalog()


@pytest.fixture()
def save(tmp_path: Path):
    def _save(structure: Structure, name: str = "in.litematic") -> Path:
        path = tmp_path / name
        write_litematic(structure, path)
        return path

    return _save
