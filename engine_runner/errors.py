"""Exception types raised by the engine.

Everything derives from EngineError so that drivers raising one of these
are recognised by the runner and passed through without being wrapped.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base class for errors the engine recognises as its own."""


class FormatError(EngineError):
    """Serialized package input is malformed."""


class TypeMismatchError(EngineError, TypeError):
    """A stored setting does not have the type requested by the reader."""

    def __init__(self, name: str, expected: type, actual: Any):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Setting '{name}' holds {type(actual).__name__} value {actual!r}, "
            f"expected {expected.__name__}"
        )


# Message used for each driver stage, keyed by stage tag.
STAGE_MESSAGES = {
    "load": "An exception occurred in the driver while loading tests.",
    "explore": "An exception occurred in the driver while exploring tests.",
    "count": "An exception occurred in the driver while counting test cases.",
    "run": "An exception occurred in the driver while running tests.",
    "stop": "An exception occurred in the driver while stopping the run.",
}


class DriverOperationError(EngineError):
    """A driver call failed with an exception the engine does not recognise.

    Attributes:
        stage: One of "load", "explore", "count", "run" or "stop".
        cause: The original exception raised by the driver.
    """

    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        if stage not in STAGE_MESSAGES:
            raise ValueError(f"Unknown driver stage: {stage}")
        self.stage = stage
        self.cause = cause
        message = STAGE_MESSAGES[stage]
        if cause is not None:
            message = f"{message} {type(cause).__name__}: {cause}"
        super().__init__(message)
