"""
Error taxonomy for the experiment engine.

Structural problems (bad configuration, broken invariants, illegal lifecycle
moves) raise one of these. Arithmetic degeneracies such as zero spend or zero
variance do not; they resolve to neutral values in the returned results.
"""


class EngineError(Exception):
    """Base class for all engine errors."""

    status_code: int = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(EngineError):
    """Malformed test, variant, journey or forecast request."""

    status_code = 422


class InvariantViolationError(EngineError):
    """A counter or weight invariant would be broken."""

    status_code = 422


class InvalidTransitionError(EngineError):
    """Lifecycle transition not allowed from the current status."""

    status_code = 409


class TestNotActiveError(EngineError):
    """Counters can only move while the test is active."""

    __test__ = False  # not a pytest test class
    status_code = 409


class TestNotFoundError(EngineError):
    __test__ = False
    status_code = 404


class DivisionByZeroError(EngineError, ZeroDivisionError):
    """A rate was requested for a variant with no impressions."""

    status_code = 422
