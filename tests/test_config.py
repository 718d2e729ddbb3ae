"""Tests for app settings and logging setup."""
import json

import pytest
from loguru import logger

from photo_edit_core.config import (
    CACHE_MAX_ITEMS, Settings, get_app_settings, load_settings, save_app_settings
)
from photo_edit_core.logger import setup_logging


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "config" / "config.json")


class TestAppSettings:
    """Tests for the JSON app_settings section."""

    def test_missing_file(self, config_file):
        assert get_app_settings(config_file) == {}
        assert load_settings(config_file) == Settings()

    def test_save_and_load(self, config_file):
        save_app_settings({"effects_dir": "/luts", "cache_max_items": 4}, config_file)
        settings = load_settings(config_file)
        assert settings.effects_dir == "/luts"
        assert settings.cache_max_items == 4
        assert settings.identity_lut_path is None

    def test_save_merges(self, config_file):
        save_app_settings({"effects_dir": "/luts"}, config_file)
        save_app_settings({"log_level": "debug"}, config_file)
        raw = get_app_settings(config_file)
        assert raw == {"effects_dir": "/luts", "log_level": "debug"}

    def test_other_sections_kept(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"recent": ["a.jpg"]}), encoding="utf-8")
        save_app_settings({"log_level": "INFO"}, str(path))
        assert json.loads(path.read_text(encoding="utf-8"))["recent"] == ["a.jpg"]

    def test_broken_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        assert get_app_settings(str(path)) == {}

    def test_normalization(self, config_file):
        save_app_settings({"cache_max_items": 0, "cache_max_memory_mb": -5,
                           "log_level": "debug", "theme": "dark"}, config_file)
        settings = load_settings(config_file)
        assert settings.cache_max_items == 1
        assert settings.cache_max_memory_mb == 1
        assert settings.log_level == "DEBUG"
        assert not hasattr(settings, "theme")

    def test_defaults(self):
        assert Settings().cache_max_items == CACHE_MAX_ITEMS


class TestLogging:
    """Tests for sink installation."""

    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "logs" / "test.log"
        log_file.parent.mkdir()
        setup_logging("INFO", log_file=str(log_file))
        logger.debug("[Test] debug line")
        logger.remove()
        assert "[Test] debug line" in log_file.read_text(encoding="utf-8")

    def test_console_level(self, capsys):
        setup_logging("WARNING", file_output=False)
        logger.info("[Test] quiet")
        logger.warning("[Test] loud")
        logger.remove()
        err = capsys.readouterr().err
        assert "[Test] loud" in err
        assert "[Test] quiet" not in err
