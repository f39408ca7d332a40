"""
Structured logging tests - transition, rejection and health check log lines.
"""

import logging

from boxflow.core.errors import StateMismatch
from boxflow.core.schema import ActingUser
from boxflow.util.logging import StructuredLogger

import pytest

USER = ActingUser(id="7", name="Asha")


class TestStructuredLogger:
    """Line format of the shared logger."""

    def test_operation_format(self, caplog):
        log = StructuredLogger("boxflow.test")

        with caplog.at_level(logging.INFO, logger="boxflow.test"):
            log.log_operation("workflow.transition", "moved", {"client_id": "1"})

        assert "Operation: workflow.transition, Status: moved, Details: {'client_id': '1'}" in caplog.text

    def test_long_remarks_truncated(self, caplog):
        log = StructuredLogger("boxflow.test")

        with caplog.at_level(logging.INFO, logger="boxflow.test"):
            log.log_transition("1", "trial-visit", "payment-visit", "done", "Asha", remark="x" * 80)

        assert "x" * 50 + "..." in caplog.text
        assert "x" * 51 not in caplog.text

    def test_degraded_health_is_warning(self, caplog):
        log = StructuredLogger("boxflow.test")

        with caplog.at_level(logging.INFO, logger="boxflow.test"):
            log.log_health_check("attention-needed", 4, 3)

        assert caplog.records[-1].levelno == logging.WARNING


class TestEngineLogging:
    """Log lines emitted by engine commands."""

    def test_move_logged(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="boxflow"):
            engine.record_outcome("c-trial", "trial-visit", "done", "", USER)

        assert "Operation: workflow.transition, Status: moved" in caplog.text
        assert "Operation: workflow.follow_up, Status: created" in caplog.text

    def test_stay_logged(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="boxflow"):
            engine.record_outcome("c-trial", "trial-visit", "pending", "", USER)

        assert "Operation: workflow.transition, Status: stayed" in caplog.text

    def test_collection_logged(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="boxflow"):
            engine.record_outcome("c-pay", "payment-visit", "done", "", USER)

        assert "Operation: workflow.collection, Status: recorded" in caplog.text

    def test_rejection_logged_as_warning(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="boxflow"), pytest.raises(StateMismatch):
            engine.record_outcome("c-trial", "payment-visit", "done", "", USER)

        rejected = [r for r in caplog.records if "Status: rejected" in r.getMessage()]
        assert len(rejected) == 1
        assert rejected[0].levelno == logging.WARNING
