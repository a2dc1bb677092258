"""Shared fixtures for configforge tests."""

import pytest

from configforge.store import ConfigStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "config.yaml"


@pytest.fixture
def store(store_path):
    """Empty store with the "wireguard" package installed."""
    return ConfigStore(
        store_path,
        lock_attempts=2,
        lock_interval=0.05,
        installed_packages=["wireguard"],
    )


@pytest.fixture
def bare_store(tmp_path):
    """Empty store with no packages installed."""
    return ConfigStore(tmp_path / "bare.yaml", lock_attempts=2, lock_interval=0.05)
