import json
import logging

import pytest
from loguru import logger

from config.logging_config import configure_logging


@pytest.fixture
def log_dir(tmp_path):
    yield tmp_path
    logger.remove()


def _read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_json_lines_with_promoted_context(log_dir):
    log_file = log_dir / "chat.log"
    configure_logging(str(log_file), force=True)

    with logger.contextualize(chat_id="c1"):
        logger.info("loaded")
    logger.remove()

    records = _read_lines(log_file)
    assert records[-1]["message"] == "loaded"
    assert records[-1]["level"] == "INFO"
    assert records[-1]["chat_id"] == "c1"
    assert "node_id" not in records[-1]


def test_errors_also_written_to_error_log(log_dir):
    log_file = log_dir / "chat.log"
    configure_logging(str(log_file), force=True)

    logger.debug("quiet")
    logger.error("broken")
    logger.remove()

    errors = _read_lines(log_dir / "error.log")
    assert [r["message"] for r in errors] == ["broken"]
    assert len(_read_lines(log_file)) == 2


def test_stdlib_logging_intercepted(log_dir):
    log_file = log_dir / "chat.log"
    configure_logging(str(log_file), force=True)

    logging.getLogger("httpx").warning("from stdlib")
    logger.remove()

    assert _read_lines(log_file)[-1]["message"] == "from stdlib"


def test_level_filter(log_dir):
    log_file = log_dir / "chat.log"
    configure_logging(str(log_file), level="WARNING", force=True)

    logger.info("hidden")
    logger.warning("shown")
    logger.remove()

    assert [r["message"] for r in _read_lines(log_file)] == ["shown"]
