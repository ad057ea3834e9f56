import pytest

from mobius_query.api.config_loaders import ENV_MAP


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep a developer's MOBIUS_* variables out of the tests."""
    for var in ENV_MAP.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("MOBIUS_CONFIG_DIR", raising=False)
