"""Driver runner - runs a package tree through framework drivers.

Coordinates the driver lifecycle for a whole package:
1. Select the terminal packages of the tree
2. Resolve one driver per terminal package
3. Load each driver with its unit and settings
4. Fan explore / count / run / stop out to every driver in order
5. Merge the driver results into one EngineResult

Drivers are called one at a time, in package order. The first driver
failure ends the operation.
"""

import logging
import threading
from typing import Any, Callable, Optional

from ..errors import DriverOperationError, EngineError
from ..package import settings as package_settings
from ..package.schema import PackageNode, is_loadable_unit
from .driver import FrameworkDriver, IsolationContext, TestEventListener, TestFilter
from .driver_service import DriverService
from .path_registry import PathRegistry
from .result import EngineResult

logger = logging.getLogger(__name__)


def _call_driver(stage: str, operation: Callable[..., Any], *args: Any) -> Any:
    """Call a driver, wrapping anything but engine errors in DriverOperationError."""
    try:
        return operation(*args)
    except EngineError:
        raise
    except Exception as e:
        logger.warning(f"driver failed during {stage}: {type(e).__name__}: {e}")
        raise DriverOperationError(stage, e) from e


class DriverRunner:
    """Runs the tests of a package tree using one driver per terminal package.

    The runner loads the package once, on the first call that needs it,
    and stays loaded. To load again, create a new runner.

    request_stop() and force_stop() may be called from another thread
    while run_tests() is in progress. A stop that arrives during the first
    load waits for that load to finish instead of starting another.
    """

    def __init__(
        self,
        package: PackageNode,
        driver_service: DriverService,
        isolation_context: Optional[IsolationContext] = None,
        path_registry: Optional[PathRegistry] = None,
    ):
        """Initialize driver runner.

        Args:
            package: Root of the package tree to run.
            driver_service: Resolves a driver for each unit.
            isolation_context: Context drivers are created in. None means
                no isolation boundary.
            path_registry: Shared registry units may need their directory
                added to while loaded outside the default context.
        """
        self.package = package
        self.driver_service = driver_service
        self.isolation_context = isolation_context
        self.path_registry = path_registry
        self._drivers: list[FrameworkDriver] = []
        self._load_result: Optional[EngineResult] = None
        self._loaded = False
        self._load_lock = threading.Lock()

    @property
    def is_package_loaded(self) -> bool:
        return self._loaded

    @property
    def load_result(self) -> Optional[EngineResult]:
        """Fragments from the last load, partial if a driver failed to load."""
        return self._load_result

    @property
    def drivers(self) -> tuple[FrameworkDriver, ...]:
        return tuple(self._drivers)

    def load(self) -> EngineResult:
        """Load the package if it isn't loaded yet.

        Returns:
            EngineResult with one fragment per terminal package.

        Raises:
            DriverOperationError: If a driver fails to load its unit.
        """
        if not self._loaded:
            with self._load_lock:
                if not self._loaded:
                    self._load_package()
                    self._loaded = True
        return self._load_result

    def explore(self, test_filter: Optional[TestFilter] = None) -> EngineResult:
        """Explore the loaded package and return information about its tests."""
        self._ensure_package_is_loaded()
        filter_text = (test_filter or TestFilter.empty()).text

        result = EngineResult()
        for driver in self._drivers:
            result.add(_call_driver("explore", driver.explore, filter_text))

        return result

    def count_test_cases(self, test_filter: Optional[TestFilter] = None) -> int:
        """Count the test cases that would run under test_filter."""
        self._ensure_package_is_loaded()
        filter_text = (test_filter or TestFilter.empty()).text

        count = 0
        for driver in self._drivers:
            count += _call_driver("count", driver.count_test_cases, filter_text)

        return count

    def run_tests(
        self,
        listener: Optional[TestEventListener] = None,
        test_filter: Optional[TestFilter] = None,
    ) -> EngineResult:
        """Run the tests in the loaded package.

        Args:
            listener: Receives test events from the drivers.
            test_filter: Selects the tests to run. Default: all tests.

        Returns:
            EngineResult with one fragment per driver.

        Raises:
            DriverOperationError: If a driver fails. Later drivers are not run
                and registered paths are left in place.
        """
        self._ensure_package_is_loaded()
        filter_text = (test_filter or TestFilter.empty()).text

        result = EngineResult()
        for driver in self._drivers:
            logger.debug(f"running driver {driver.id}")
            result.add(_call_driver("run", driver.run, listener, filter_text))

        if self.path_registry is not None:
            for package in self.package.select(is_loadable_unit):
                self.path_registry.remove_path_from_file(package.full_name)

        return result

    def request_stop(self) -> None:
        """Ask the current run to stop. Ignored by drivers that aren't running."""
        self._stop_run(False)

    def force_stop(self) -> None:
        """Force the current run to stop, killing workers if the drivers need to."""
        self._stop_run(True)

    def _stop_run(self, force: bool) -> None:
        self._ensure_package_is_loaded()
        logger.info(f"{'forcing' if force else 'requesting'} stop of {len(self._drivers)} driver(s)")

        for driver in self._drivers:
            _call_driver("stop", driver.stop_run, force)

    def _ensure_package_is_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _load_package(self) -> None:
        # The package may be a single unit, a list of units, or any tree of
        # packages with the units at its terminal nodes.
        packages_to_load = self.package.select(lambda p: not p.has_sub_packages())

        self._drivers = []
        self._load_result = EngineResult()

        for sub_package in packages_to_load:
            test_file = sub_package.full_name

            target_framework = sub_package.get_setting(
                package_settings.TARGET_FRAMEWORK, None, str
            )
            skip_non_test_units = sub_package.get_setting(
                package_settings.SKIP_NON_TEST_UNITS, False
            )

            if self._needs_shared_resolver(sub_package):
                # add_path ignores directories that are already registered
                self.path_registry.add_path_from_file(test_file)

            driver = self.driver_service.get_driver(
                self.isolation_context, test_file, target_framework, skip_non_test_units
            )
            driver.id = sub_package.id
            logger.debug(f"loading {test_file} with driver {driver.id}")

            self._load_result.add(
                _call_driver("load", driver.load, test_file, sub_package.settings)
            )
            self._drivers.append(driver)

    def _needs_shared_resolver(self, package: PackageNode) -> bool:
        return (
            self.path_registry is not None
            and self.isolation_context is not None
            and not self.isolation_context.is_default
            and package.full_name is not None
            and package.get_setting(package_settings.REQUIRES_SHARED_RESOLVER, False)
        )
