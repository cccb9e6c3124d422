"""pytest configuration for nbi tests."""

import pytest

from nbi.config import set_config_path


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep every test away from the real config file and credential."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("NBI_CONFIG_DIR", str(tmp_path / "config"))
    set_config_path(None)
    yield
    set_config_path(None)
