"""Tests for logging setup and secret scrubbing."""

import logging
from unittest.mock import MagicMock

import structlog

from cmdwire.logging_config import LOGGER_PREFIX, SUBSYSTEMS, sanitize_secrets, setup_logging


def test_sanitize_secrets_scrubs_nested_values():
    token = "Bot " + "a" * 30
    event = {
        "event": "send_failed",
        "header": token,
        "items": [token, 3],
        "extra": {"auth": "Bearer " + "b" * 30},
    }
    out = sanitize_secrets(None, "info", event)
    assert "a" * 30 not in out["header"]
    assert "a" * 30 not in out["items"][0]
    assert out["items"][1] == 3
    assert "b" * 30 not in out["extra"]["auth"]
    assert out["event"] == "send_failed"


def test_setup_logging_creates_subsystem_files(tmp_path):
    config = MagicMock()
    config.log_dir = tmp_path / "logs"
    config.logging_level = "info"
    config.logging_subsystem_levels = {"dispatch": "debug"}
    config.logging_max_file_size_mb = 1
    config.logging_backup_count = 1

    try:
        setup_logging(config)
        assert logging.getLogger(f"{LOGGER_PREFIX}.dispatch").level == logging.DEBUG
        assert logging.getLogger(f"{LOGGER_PREFIX}.setup").level == logging.INFO
        for subsystem in SUBSYSTEMS:
            assert (tmp_path / "logs" / f"{subsystem}.log").exists()
        assert (tmp_path / "logs" / "cmdwire.log").exists()
    finally:
        for name in ["", LOGGER_PREFIX] + [f"{LOGGER_PREFIX}.{s}" for s in SUBSYSTEMS]:
            for handler in logging.getLogger(name).handlers:
                handler.close()
            logging.getLogger(name).handlers.clear()
        structlog.reset_defaults()
