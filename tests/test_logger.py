"""Tests for the loguru setup."""

import sys

import pytest
from loguru import logger

from riskscan.utils.logger import setup_logger


@pytest.fixture(autouse=True)
def _restore_default_sink():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_level_comes_from_argument_not_environment(monkeypatch, capsys) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    setup_logger(level="warning", log_dir=None)

    logger.info("[SCAN] routine")
    logger.warning("[SCAN] degraded")

    err = capsys.readouterr().err
    assert "routine" not in err
    assert "degraded" in err


def test_json_console_sink(capsys) -> None:
    setup_logger(json_logs=True, level="INFO", log_dir=None)

    logger.info("[CACHE] hit")

    out = capsys.readouterr()
    assert out.out == ""
    assert '"message": "[CACHE] hit"' in out.err


def test_file_sink_written(tmp_path) -> None:
    setup_logger(level="ERROR", log_dir=str(tmp_path))

    logger.debug("[RPC] retry 1/3")
    logger.remove()

    files = list(tmp_path.glob("riskscan_*.log"))
    assert len(files) == 1
    assert "[RPC] retry 1/3" in files[0].read_text()
