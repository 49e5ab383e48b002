"""Runner configuration and logging setup."""

import logging
import logging.config
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .package.schema import PackageNode
from .runner.driver import IsolationContext
from .runner.driver_runner import DriverRunner
from .runner.driver_service import DriverService
from .runner.path_registry import PathRegistry

logging_config: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "stderr": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "engine_runner": {
            "level": "WARNING",
            "handlers": ["stderr"],
            "propagate": False,
        },
    },
}


def configure_logging(level: str = "WARNING") -> None:
    """Send engine_runner logs to stderr at the given level."""
    config = {**logging_config, "loggers": {
        "engine_runner": {**logging_config["loggers"]["engine_runner"], "level": level.upper()},
    }}
    logging.config.dictConfig(config)


@dataclass
class RunnerConfig:
    """Configuration for a driver runner."""
    isolation: Optional[str] = None
    use_path_registry: bool = False
    settings: dict[str, Any] = field(default_factory=dict)
    log_level: Optional[str] = None

    @property
    def isolation_context(self) -> Optional[IsolationContext]:
        if self.isolation is None:
            return None
        return IsolationContext(self.isolation, is_default=self.isolation == "default")

    def apply(self, package: PackageNode) -> None:
        """Push the configured settings into every package of the tree."""
        for name, value in self.settings.items():
            package.add_setting(name, value)

    def create_runner(
        self,
        package: PackageNode,
        driver_service: DriverService,
        path_registry: Optional[PathRegistry] = None,
    ) -> DriverRunner:
        """Apply the settings to package and build a runner for it.

        A new PathRegistry is created when use_path_registry is set and
        none is given. If log_level is set, logging is configured with it.
        """
        if self.log_level is not None:
            configure_logging(self.log_level)
        self.apply(package)
        if self.use_path_registry and path_registry is None:
            path_registry = PathRegistry()
        return DriverRunner(
            package,
            driver_service,
            isolation_context=self.isolation_context,
            path_registry=path_registry if self.use_path_registry else None,
        )


def load_config(file_path: Union[str, Path]) -> RunnerConfig:
    """Load a RunnerConfig from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the YAML isn't a mapping or has unknown keys.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return RunnerConfig()

    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    unknown = set(data) - set(RunnerConfig.__dataclass_fields__)
    if unknown:
        raise ValueError(f"Unknown config key(s) in {file_path}: {', '.join(sorted(unknown))}")

    if not isinstance(data.get("settings", {}), dict):
        raise ValueError(f"'settings' must be a mapping in {file_path}")

    return RunnerConfig(**data)
