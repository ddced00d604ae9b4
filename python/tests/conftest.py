from __future__ import annotations

import shutil
import uuid
from pathlib import Path
from typing import Iterator

import pytest


@pytest.fixture
def tmp_path() -> Iterator[Path]:
    """Scratch directory under target/ for activator map files written by a test.

    Each test gets a fresh directory so map modules loaded by path never
    collide across tests.
    """
    maps_root = Path(__file__).resolve().parents[2] / "target" / "activator-maps"
    maps_root.mkdir(parents=True, exist_ok=True)
    case_dir = maps_root / f"maps-{uuid.uuid4().hex}"
    case_dir.mkdir()
    try:
        yield case_dir
    finally:
        shutil.rmtree(case_dir, ignore_errors=True)


class Counter:
    """Counts calls; ``bump()`` returns the new count."""

    def __init__(self) -> None:
        self.count = 0

    def bump(self) -> int:
        self.count += 1
        return self.count


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture
def make_counter():
    return Counter
