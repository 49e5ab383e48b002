"""Runner module - driver orchestration."""

from .driver import (
    DEFAULT_CONTEXT,
    FrameworkDriver,
    IsolationContext,
    NotRunnableDriver,
    SkippedDriver,
    TestEventListener,
    TestFilter,
)
from .driver_runner import DriverRunner
from .driver_service import DriverService
from .path_registry import PathRegistry
from .result import EngineResult

__all__ = [
    "DEFAULT_CONTEXT",
    "FrameworkDriver",
    "IsolationContext",
    "NotRunnableDriver",
    "SkippedDriver",
    "TestEventListener",
    "TestFilter",
    "DriverRunner",
    "DriverService",
    "PathRegistry",
    "EngineResult",
]
