"""Tests for the project logging setup."""

from __future__ import annotations

import logging

from utils.exceptions import WhoopAPIError
from utils.logger import NOISY_LOGGERS, ROOT_LOGGER, configure_logging, get_logger, log_exception


class TestLogger:
    def test_module_loggers_nest_under_project_root(self) -> None:
        assert get_logger("utils.sync_manager").name == "healthos.utils.sync_manager"
        assert get_logger("healthos.cli").name == "healthos.cli"

    def test_root_configured_once(self) -> None:
        root = configure_logging()
        handlers = list(root.handlers)

        configure_logging()
        get_logger("utils.whoop_client")

        assert root.name == ROOT_LOGGER
        assert root.handlers == handlers
        assert root.propagate is False

    def test_third_party_loggers_quieted(self) -> None:
        configure_logging()
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_log_exception_includes_context_and_type(self) -> None:
        logger = logging.getLogger("healthos.tests.capture")
        records: list[logging.LogRecord] = []

        class Collect(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                records.append(record)

        handler = Collect()
        logger.addHandler(handler)
        try:
            raise WhoopAPIError(500, "boom", "/v2/cycle")
        except WhoopAPIError as e:
            log_exception(logger, e, "[cycles] Sync failed")
        finally:
            logger.removeHandler(handler)

        assert records[0].levelno == logging.ERROR
        assert records[0].getMessage() == "[cycles] Sync failed: WhoopAPIError: WHOOP API error 500 on /v2/cycle: boom"
        assert records[0].exc_info[0] is WhoopAPIError
