import json
import logging

import pytest
from readaloud.core.config import Config
from readaloud.core.exceptions import ConfigurationError
from readaloud.core.logging import StructuredFormatter, set_correlation_id

def test_config_defaults():
    config = Config.load()
    assert config.chunking.max_length == 160
    assert config.chunking.min_text_length == 5
    assert config.upload.max_size == 100 * 1024 * 1024
    assert config.upload.port == 3000

def test_config_env_overrides(monkeypatch):
    monkeypatch.setenv("READALOUD_LOG_LEVEL", "debug")
    monkeypatch.setenv("READALOUD_LANGUAGE", "id-ID")
    monkeypatch.setenv("READALOUD_RATE", "1.25")
    monkeypatch.setenv("READALOUD_MAX_CHUNK_LENGTH", "200")
    monkeypatch.setenv("READALOUD_PORT", "8080")
    monkeypatch.setenv("READALOUD_UPLOAD_DIR", "/tmp/readaloud")

    config = Config.load()

    assert config.logging.level == "DEBUG"
    assert config.voice.language == "id-ID"
    assert config.voice.rate == 1.25
    assert config.chunking.max_length == 200
    assert config.upload.port == 8080
    assert config.upload.upload_dir == "/tmp/readaloud"

def test_config_ignores_empty_values(monkeypatch):
    monkeypatch.setenv("READALOUD_PORT", "")
    monkeypatch.setenv("READALOUD_LANGUAGE", "")
    config = Config.load()
    assert config.upload.port == 3000
    assert config.voice.language == "en-US"

def test_config_rejects_bad_numbers(monkeypatch):
    monkeypatch.setenv("READALOUD_PORT", "eighty")
    with pytest.raises(ConfigurationError) as exc_info:
        Config.load()
    assert "READALOUD_PORT" in str(exc_info.value)

def test_config_rejects_zero_chunk_length(monkeypatch):
    monkeypatch.setenv("READALOUD_MAX_CHUNK_LENGTH", "0")
    with pytest.raises(ConfigurationError):
        Config.load()

def test_structured_formatter_includes_extras_and_correlation_id():
    set_correlation_id("session-1")
    record = logging.LogRecord("readaloud.test", logging.INFO, __file__, 1, "Playback transition", None, None)
    record.old_state = "IDLE"
    record.new_state = "PLAYING"

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["message"] == "Playback transition"
    assert payload["correlation_id"] == "session-1"
    assert payload["old_state"] == "IDLE"
    assert payload["new_state"] == "PLAYING"
    set_correlation_id(None)
