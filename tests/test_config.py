import pytest

from bibledex.config import load_settings
from bibledex.exceptions import ConfigError
from bibledex.log import configure_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # Keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    for var in ("BIBLEDEX_STORE__HOST", "BIBLEDEX_STORE__INDEX", "BIBLEDEX_INGEST__WORKERS"):
        monkeypatch.delenv(var, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.store.host == "https://localhost:9200"
    assert settings.store.index == "bible"
    assert settings.store.verify_ssl is True
    assert settings.ingest.workers == 4
    assert settings.ingest.flush_bytes == 5_000_000
    assert settings.ingest.flush_interval == 30.0
    assert settings.search.max_results == 25


def test_flag_values_override_defaults() -> None:
    settings = load_settings({"store": {"host": "http://es:9200", "username": None}, "ingest": {"workers": 8}})
    assert settings.store.host == "http://es:9200"
    assert settings.store.username is None
    assert settings.store.index == "bible"
    assert settings.ingest.workers == 8


def test_environment_overrides_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIBLEDEX_STORE__HOST", "http://from-env:9200")
    monkeypatch.setenv("BIBLEDEX_INGEST__WORKERS", "2")
    settings = load_settings({"store": {"host": "http://from-flag:9200", "index": "kjv"}})
    assert settings.store.host == "http://from-env:9200"
    assert settings.store.index == "kjv"
    assert settings.ingest.workers == 2


def test_dotenv_file_is_read(tmp_path) -> None:
    (tmp_path / ".env").write_text("BIBLEDEX_STORE__INDEX=from-dotenv\n", encoding="utf-8")
    assert load_settings().store.index == "from-dotenv"


def test_invalid_value_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIBLEDEX_INGEST__WORKERS", "many")
    with pytest.raises(ConfigError):
        load_settings()


def test_unknown_log_level_is_config_error() -> None:
    with pytest.raises(ConfigError):
        configure_logging("chatty")
