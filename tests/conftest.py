import os

import pytest


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch, tmp_path):
    """Keep host env vars and config files out of settings loaded by tests."""
    for key in list(os.environ):
        if key.startswith("PORTFOLIO_VALUATOR_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("PORTFOLIO_VALUATOR_CONFIG", str(tmp_path / "absent.toml"))
