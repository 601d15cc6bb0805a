"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

ScriptFactory = Callable[[str], Path]


@pytest.fixture
def make_script(tmp_path: Path) -> ScriptFactory:
    """Write an executable ``/bin/sh`` script with the given body."""
    counter = 0

    def _make(body: str) -> Path:
        nonlocal counter
        counter += 1
        path = tmp_path / f"deploy-{counter}.sh"
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        path.chmod(0o755)
        return path

    return _make
