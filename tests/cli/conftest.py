"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[dict[str, str]]:
    """Point the CLI at an empty config and restore root logging afterwards."""
    for key in list(os.environ):
        if key.startswith("APRSFEED_"):
            monkeypatch.delenv(key)
    env = {"APRSFEED_CONFIG": str(tmp_path / "config.json")}
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield env
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
