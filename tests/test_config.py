from __future__ import annotations

import pytest

from eprosys import config
from eprosys.config import Settings, get_settings
from eprosys.errors import ConfigError

ENV_KEYS = [
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "DATABASE_URL",
    "EPROSYS_ENABLE_REALTIME",
    "EPROSYS_ENABLE_POLLING",
    "EPROSYS_POLLING_INTERVAL",
    "EPROSYS_ALWAYS_POLL",
    "EPROSYS_ACTIVITY_LIMIT",
    "EPROSYS_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # nem .env local nem st.secrets interferem nos testes
    monkeypatch.setattr(config, "load_dotenv", lambda **kwargs: False)
    monkeypatch.setattr(config, "_secret", lambda name: None)


def test_defaults() -> None:
    settings = get_settings()

    assert settings.supabase_url is None
    assert settings.enable_realtime is True
    assert settings.enable_polling is True
    assert settings.polling_interval == 30.0
    assert settings.always_poll is False
    assert settings.activity_limit == 50
    assert settings.log_level == "INFO"


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", " https://x.supabase.co ")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("EPROSYS_ENABLE_REALTIME", "false")
    monkeypatch.setenv("EPROSYS_POLLING_INTERVAL", "5")
    monkeypatch.setenv("EPROSYS_ALWAYS_POLL", "sim")
    monkeypatch.setenv("EPROSYS_ACTIVITY_LIMIT", "10")
    monkeypatch.setenv("EPROSYS_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.require_supabase() == ("https://x.supabase.co", "anon")
    assert settings.enable_realtime is False
    assert settings.polling_interval == 5.0
    assert settings.always_poll is True
    assert settings.activity_limit == 10
    assert settings.log_level == "DEBUG"


def test_blank_values_count_as_missing(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "   ")
    assert get_settings().supabase_url is None


def test_falls_back_to_streamlit_secrets(monkeypatch) -> None:
    secrets = {"SUPABASE_URL": "https://segredo.supabase.co", "SUPABASE_ANON_KEY": "s3"}
    monkeypatch.setattr(config, "_secret", secrets.get)

    assert get_settings().require_supabase() == ("https://segredo.supabase.co", "s3")


@pytest.mark.parametrize(
    "key, value",
    [
        ("EPROSYS_ENABLE_POLLING", "talvez"),
        ("EPROSYS_POLLING_INTERVAL", "abc"),
        ("EPROSYS_POLLING_INTERVAL", "0"),
        ("EPROSYS_ACTIVITY_LIMIT", "-3"),
        ("EPROSYS_ACTIVITY_LIMIT", "2.5"),
    ],
)
def test_invalid_values_raise(monkeypatch, key, value) -> None:
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError):
        get_settings()


def _settings(**kwargs):
    base = dict(supabase_url=None, supabase_anon_key=None, supabase_service_role_key=None, database_url=None)
    base.update(kwargs)
    return Settings(**base)


def test_require_supabase_names_missing_variable() -> None:
    with pytest.raises(ConfigError, match="SUPABASE_URL"):
        _settings().require_supabase()
    with pytest.raises(ConfigError, match="SUPABASE_ANON_KEY"):
        _settings(supabase_url="https://x").require_supabase()


def test_service_role_key_is_fallback() -> None:
    settings = _settings(supabase_url="https://x", supabase_service_role_key="service")
    assert settings.supabase_key == "service"
    assert _settings(supabase_anon_key="anon", supabase_service_role_key="service").supabase_key == "anon"
