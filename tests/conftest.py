"""Pytest fixtures for caltrack tests."""

from __future__ import annotations

import pytest

from caltrack.config import reload_settings


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point CALTRACK_HOME at a temporary directory with no config yet."""
    monkeypatch.setenv("CALTRACK_HOME", str(tmp_path))
    reload_settings()
    return tmp_path


@pytest.fixture
def config_path(config_home):
    """Path of config.yaml inside the temporary home."""
    return config_home / "config.yaml"
