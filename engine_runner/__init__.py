"""engine-runner - test package model and driver orchestration."""

from .errors import DriverOperationError, EngineError, FormatError, TypeMismatchError
from .package import PackageNode, decode, encode
from .runner import DriverRunner, DriverService, EngineResult, PathRegistry, TestFilter

__version__ = "0.1.0"

__all__ = [
    "DriverOperationError",
    "EngineError",
    "FormatError",
    "TypeMismatchError",
    "PackageNode",
    "decode",
    "encode",
    "DriverRunner",
    "DriverService",
    "EngineResult",
    "PathRegistry",
    "TestFilter",
]
