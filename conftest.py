"""Pytest configuration and shared fixtures for docker-prune-timer."""

# pylint: disable=wrong-import-position

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest


@pytest.fixture(autouse=True)
def isolated_config_environment(tmp_path, monkeypatch):
    """Keep the host's system config file and PRUNE_TIMER_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("PRUNE_TIMER_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("prune_timer.config.DEFAULT_CONFIG_FILE", tmp_path / "absent.yaml")
