import logging
import logging.handlers

import pytest

from entity_store.config.settings import Settings
from entity_store.core.logging.builder import make_dict_config, setup_logging


class DummySettings:
    # Minimal Settings-like object
    LOG_FORMAT = "json"
    LOG_LEVEL = "INFO"
    LOG_TO_STDOUT = False
    LOG_DIR = None  # set per test
    LOG_MAX_BYTES = 1000
    LOG_BACKUP_COUNT = 1
    ENV = "development"
    ENABLE_SQL_LOGGING = False


@pytest.fixture
def restore_logging():
    yield
    setup_logging(Settings(ENV="testing", LOG_FORMAT="text", LOG_TO_STDOUT=True))


def test_make_dict_config_with_files(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path

    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "file", "error_file"}
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "entity_store.log")
    assert cfg["handlers"]["error_file"]["level"] == "ERROR"
    assert cfg["handlers"]["console"]["formatter"] == "json"
    assert set(cfg["filters"]) == {"correlation_id", "redact"}
    assert cfg["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"


def test_make_dict_config_stdout_only():
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    settings.LOG_FORMAT = "text"
    settings.ENABLE_SQL_LOGGING = True

    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "error_console"}
    assert cfg["handlers"]["console"]["formatter"] == "standard"
    assert cfg["loggers"]["sqlalchemy.engine"]["level"] == "DEBUG"
    assert cfg["loggers"][""]["handlers"] == ["console", "error_console"]


def test_setup_logging_creates_log_dir(tmp_path, restore_logging):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path / "logs"
    assert not settings.LOG_DIR.exists()

    setup_logging(settings)

    assert settings.LOG_DIR.exists()
    root = logging.getLogger()
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)


def test_settings_normalize_log_values(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")

    settings = Settings(_env_file=None)

    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.LOG_FORMAT == "text"
