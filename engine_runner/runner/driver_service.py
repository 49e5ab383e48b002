"""Driver resolution.

Chooses a driver for a unit by looking at it statically: an explicit
framework name wins, otherwise the file suffix decides.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional

from .driver import FrameworkDriver, IsolationContext, NotRunnableDriver, SkippedDriver

logger = logging.getLogger(__name__)

# Called as factory(isolation_context, test_file) -> driver
DriverFactory = Callable[[Optional[IsolationContext], str], FrameworkDriver]


@dataclass
class DriverRegistration:
    """A driver factory and the unit suffixes it claims."""
    framework: str
    factory: DriverFactory
    suffixes: tuple[str, ...] = field(default_factory=tuple)


class DriverService:
    """Creates drivers for units from a set of registered factories."""

    def __init__(self):
        self._registrations: dict[str, DriverRegistration] = {}

    @property
    def frameworks(self) -> list[str]:
        """Registered framework names, in registration order."""
        return list(self._registrations)

    def register(
        self,
        framework: str,
        factory: DriverFactory,
        suffixes: tuple[str, ...] = (),
    ) -> None:
        """Register a driver factory.

        Args:
            framework: Name used as the framework hint in package settings.
            factory: Creates a driver for one unit.
            suffixes: File suffixes (e.g. ".py") this factory handles when
                no framework hint is given.
        """
        self._registrations[framework] = DriverRegistration(
            framework=framework,
            factory=factory,
            suffixes=tuple(s.lower() for s in suffixes),
        )
        logger.debug(f"registered driver factory '{framework}' for {suffixes or 'hint only'}")

    def get_driver(
        self,
        isolation_context: Optional[IsolationContext],
        test_file: Optional[str],
        target_framework: Optional[str],
        skip_non_test_units: bool,
    ) -> FrameworkDriver:
        """Return a driver for a unit.

        Units that can't be handled get a NotRunnableDriver, or a
        SkippedDriver when skip_non_test_units is set and nothing claims
        the unit.
        """
        if not test_file:
            return NotRunnableDriver(test_file, "No file given for package")

        if not os.path.exists(test_file):
            return NotRunnableDriver(test_file, f"File not found: {test_file}")

        if target_framework:
            registration = self._registrations.get(target_framework)
            if registration is None:
                return NotRunnableDriver(
                    test_file, f"No driver available for framework '{target_framework}'"
                )
        else:
            registration = self._match_suffix(test_file)
            if registration is None:
                if skip_non_test_units:
                    logger.info(f"skipping non-test unit {test_file}")
                    return SkippedDriver(test_file)
                return NotRunnableDriver(
                    test_file, f"No driver found for {os.path.basename(test_file)}"
                )

        logger.debug(f"using '{registration.framework}' driver for {test_file}")
        return registration.factory(isolation_context, test_file)

    def _match_suffix(self, test_file: str) -> Optional[DriverRegistration]:
        lowered = test_file.lower()
        for registration in self._registrations.values():
            if registration.suffixes and lowered.endswith(registration.suffixes):
                return registration
        return None
