from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    tests_dir = Path(__file__).resolve().parent
    root = tests_dir.parent
    for p in (root, tests_dir):
        if str(p) not in sys.path:
            sys.path.insert(0, str(p))


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root
