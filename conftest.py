"""
Unit test conftest — isolate MindX environment variables so Settings()
tests are not affected by a developer's or CI's real configuration.
"""
import pytest

_MINDX_ENV_VARS = [
    "MINDX_AGENT_API_KEY",
    "MINDX_CONFIG",
]


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch):
    """Remove MindX env vars for every test and disable .env file loading
    so local developer .env files don't leak credentials into tests."""
    for var in _MINDX_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
