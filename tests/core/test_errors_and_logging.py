import json

import pytest
import structlog

from liftlab.core.exceptions import (
    DivisionByZeroError,
    EngineError,
    InvalidTransitionError,
    InvariantViolationError,
    TestNotActiveError,
    TestNotFoundError,
    ValidationError,
)
from liftlab.core.logging import configure_logging


class TestErrors:
    @pytest.mark.parametrize(
        "error_class, status_code",
        [
            (ValidationError, 422),
            (InvariantViolationError, 422),
            (DivisionByZeroError, 422),
            (InvalidTransitionError, 409),
            (TestNotActiveError, 409),
            (TestNotFoundError, 404),
        ],
    )
    def test_status_codes(self, error_class, status_code):
        error = error_class("boom")

        assert isinstance(error, EngineError)
        assert error.status_code == status_code

    def test_context_is_kept(self):
        error = InvalidTransitionError("no", test_id="t1", status="draft")

        assert error.message == "no"
        assert error.context == {"test_id": "t1", "status": "draft"}


class TestLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_output=True)

        structlog.get_logger("test").info("test_created", test_id="t1")

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["event"] == "test_created"
        assert line["test_id"] == "t1"
        assert line["level"] == "info"
        assert "timestamp" in line

    def test_level_filtering(self, capsys):
        configure_logging(level="WARNING", json_output=True)

        structlog.get_logger("test").info("hidden")

        assert capsys.readouterr().out == ""

    def test_context_vars_are_merged(self, capsys):
        configure_logging(level="INFO", json_output=True)

        with structlog.contextvars.bound_contextvars(request_id="req-1"):
            structlog.get_logger("test").info("inside")

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["request_id"] == "req-1"
