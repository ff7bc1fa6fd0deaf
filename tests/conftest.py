"""Test configuration ensuring the flat project modules are importable."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture
def gg_binary(tmp_path: Path):
    """Write ``payload`` to a fake executable inside ``tmp_path``."""

    def _make(payload: bytes, name: str = "gg.exe") -> Path:
        path = tmp_path / name
        path.write_bytes(payload)
        return path

    return _make
