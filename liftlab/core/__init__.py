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

__all__ = [
    "EngineError",
    "ValidationError",
    "InvariantViolationError",
    "InvalidTransitionError",
    "TestNotActiveError",
    "TestNotFoundError",
    "DivisionByZeroError",
    "configure_logging",
]
