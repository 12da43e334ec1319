"""Tests for the loguru setup."""

from qualitygate.utils import logging as qg_logging
from qualitygate.utils.logging import (
    configure_file_logging,
    logger,
    restore_stderr_sink,
    swap_to_rich_sink,
)


class TestFileLogging:
    def test_run_log_written(self, tmp_path):
        handler_id = configure_file_logging(tmp_path / ".qg")
        try:
            logger.debug("phase lint started")
        finally:
            logger.remove(handler_id)

        text = (tmp_path / ".qg" / "qualitygate.log").read_text()
        assert "DEBUG" in text
        assert "phase lint started" in text


class TestSinkSwap:
    def test_messages_routed_while_swapped(self):
        received = []
        handler_id = swap_to_rich_sink(received.append)
        try:
            assert qg_logging._stderr_handler_id is None
            logger.warning("tool output above the table")
        finally:
            restore_stderr_sink(handler_id)

        assert any("tool output above the table" in str(m) for m in received)
        assert qg_logging._stderr_handler_id is not None

        logger.warning("after restore")
        assert not any("after restore" in str(m) for m in received)

    def test_restore_twice_keeps_one_stderr_sink(self):
        handler_id = swap_to_rich_sink(lambda m: None)
        restore_stderr_sink(handler_id)
        first = qg_logging._stderr_handler_id
        restore_stderr_sink(handler_id)
        assert qg_logging._stderr_handler_id == first
