"""
Tests for the logging facade.
"""

import logging

import pytest

from dify_stream.core.logging import logger, setup_logging, Logger


class TestSetupLogging:

    def test_console_only_without_log_dir(self, monkeypatch):
        monkeypatch.delenv("LOG_DIR", raising=False)
        configured = setup_logging()

        assert configured.name == "dify-stream"
        assert len(configured.handlers) == 1
        assert isinstance(configured.handlers[0], logging.StreamHandler)

    def test_file_handlers_with_log_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_DIR", str(tmp_path))
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        try:
            configured = setup_logging()
            file_handlers = [h for h in configured.handlers if isinstance(h, logging.FileHandler)]

            assert configured.level == logging.DEBUG
            assert len(file_handlers) == 2
            assert (tmp_path / "client.log").exists()
        finally:
            monkeypatch.delenv("LOG_DIR")
            monkeypatch.delenv("LOG_LEVEL")
            for handler in logging.getLogger("dify-stream").handlers:
                handler.close()
            setup_logging()


class TestLogger:

    def test_shared_instance(self):
        from dify_stream.core.logging import get_logger
        assert get_logger() is logger
        assert isinstance(logger, Logger)

    def test_kwargs_become_record_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="dify-stream"):
            logger.info("Stream processing completed", request_id="r1", message_count=3)

        record = caplog.records[-1]
        assert record.getMessage() == "Stream processing completed"
        assert record.request_id == "r1"
        assert record.message_count == 3

    def test_response_message(self, caplog):
        with caplog.at_level(logging.INFO, logger="dify-stream"):
            logger.response("Blocking response received", request_id="r2", status_code=429, latency_ms=12)

        assert caplog.records[-1].getMessage() == "Response: Blocking response received | status=429 | time=12ms"

    def test_debug_data_skipped_unless_debug(self, caplog):
        with caplog.at_level(logging.INFO, logger="dify-stream"):
            logger.debug_data("Request body", {"query": "hi"}, request_id="r3")

        assert not any("Request body" in r.getMessage() for r in caplog.records)

    def test_request_context_logs_failure_and_completion(self, caplog):
        with caplog.at_level(logging.INFO, logger="dify-stream"):
            with pytest.raises(RuntimeError):
                with logger.request_context("Blocking chat", request_id="r4"):
                    raise RuntimeError("backend gone")

        messages = [r.getMessage() for r in caplog.records]
        assert "Request: Blocking chat" in messages
        assert "Blocking chat failed: backend gone" in messages
        assert any(m.startswith("Completed: Blocking chat") for m in messages)
