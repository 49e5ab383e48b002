"""Tests for the driver runner."""
import os
import threading

import pytest

from engine_runner.errors import DriverOperationError, FormatError
from engine_runner.package import settings as package_settings
from engine_runner.package.schema import PackageNode
from engine_runner.runner.driver import IsolationContext, TestFilter
from engine_runner.runner.driver_runner import DriverRunner
from engine_runner.runner.path_registry import PathRegistry

ISOLATED = IsolationContext("worker-1", is_default=False)


def stages(service, stage):
    return [call for call in service.calls if call[0] == stage]


class TestLoad:
    def test_one_driver_per_terminal_package(self, nested_package, driver_service):
        runner = DriverRunner(nested_package, driver_service)

        result = runner.load()

        assert runner.is_package_loaded
        leaves = [p for p in nested_package.walk() if not p.has_sub_packages()]
        assert [d.test_file for d in runner.drivers] == [p.full_name for p in leaves]
        assert [d.id for d in runner.drivers] == [p.id for p in leaves]
        assert len(result) == 4
        assert result is runner.load_result

    def test_single_unit_package(self, id_generator, driver_service):
        package = PackageNode("/work/test_only.py", id_generator=id_generator)
        runner = DriverRunner(package, driver_service)

        runner.load()

        assert [d.test_file for d in runner.drivers] == [package.full_name]
        assert runner.drivers[0].id == package.id

    def test_settings_drive_resolution(self, three_unit_package, driver_service):
        three_unit_package.sub_packages[1].add_setting(package_settings.TARGET_FRAMEWORK, "unittest")
        three_unit_package.add_setting(package_settings.SKIP_NON_TEST_UNITS, True)
        runner = DriverRunner(three_unit_package, driver_service, isolation_context=ISOLATED)

        runner.load()

        assert [(r[0], r[2], r[3]) for r in driver_service.requests] == [
            (ISOLATED, None, True),
            (ISOLATED, "unittest", True),
            (ISOLATED, None, True),
        ]
        assert runner.drivers[1].loaded_settings == {
            package_settings.TARGET_FRAMEWORK: "unittest",
            package_settings.SKIP_NON_TEST_UNITS: True,
        }

    def test_load_is_idempotent(self, three_unit_package, driver_service):
        runner = DriverRunner(three_unit_package, driver_service)
        first = runner.load()
        second = runner.load()
        runner.explore()

        assert first is second
        assert len(stages(driver_service, "load")) == 3

    def test_failed_load_keeps_partial_result(self, three_unit_package, make_driver_service):
        cause = RuntimeError("bad module")
        service = make_driver_service(failures={(1, "load"): cause})
        runner = DriverRunner(three_unit_package, service)

        with pytest.raises(DriverOperationError) as exc_info:
            runner.load()

        assert exc_info.value.stage == "load"
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert len(runner.load_result) == 1
        assert not runner.is_package_loaded
        assert stages(service, "load") == [("load", 0), ("load", 1)]


class TestExploreAndCount:
    def test_explore_loads_lazily(self, three_unit_package, driver_service):
        runner = DriverRunner(three_unit_package, driver_service)

        result = runner.explore(TestFilter("<filter><test>a</test></filter>"))

        assert [c[:2] for c in driver_service.calls] == [
            ("load", 0), ("load", 1), ("load", 2),
            ("explore", 0), ("explore", 1), ("explore", 2),
        ]
        assert all(c[2] == "<filter><test>a</test></filter>" for c in stages(driver_service, "explore"))
        assert [f'id="{d.id}"' in fragment for d, fragment in zip(runner.drivers, result)] == [True] * 3

    def test_explore_default_filter(self, three_unit_package, driver_service):
        DriverRunner(three_unit_package, driver_service).explore()
        assert {c[2] for c in stages(driver_service, "explore")} == {"<filter/>"}

    def test_explore_failure(self, three_unit_package, make_driver_service):
        service = make_driver_service(failures={(0, "explore"): ValueError("boom")})
        runner = DriverRunner(three_unit_package, service)

        with pytest.raises(DriverOperationError) as exc_info:
            runner.explore()

        assert exc_info.value.stage == "explore"
        assert stages(service, "explore") == [("explore", 0, "<filter/>")]

    def test_count_sums_drivers(self, three_unit_package, make_driver_service):
        service = make_driver_service(counts={0: 3, 1: 0, 2: 5})
        assert DriverRunner(three_unit_package, service).count_test_cases() == 8

    def test_count_failure(self, three_unit_package, make_driver_service):
        service = make_driver_service(failures={(2, "count"): OSError("gone")})
        runner = DriverRunner(three_unit_package, service)

        with pytest.raises(DriverOperationError) as exc_info:
            runner.count_test_cases()

        assert exc_info.value.stage == "count"
        assert isinstance(exc_info.value.cause, OSError)


class TestRunTests:
    def test_results_in_driver_order(self, three_unit_package, driver_service, listener):
        runner = DriverRunner(three_unit_package, driver_service)

        result = runner.run_tests(listener, TestFilter.empty())

        assert len(result) == 3
        assert result.fragments == [
            f'<test-suite id="{d.id}" result="Passed" />' for d in runner.drivers
        ]
        assert listener.events == [f'<start-suite id="{d.id}" />' for d in runner.drivers]
        assert result.merged().startswith("<test-run><test-suite")

    def test_failing_driver_stops_the_run(self, three_unit_package, make_driver_service, listener):
        cause = RuntimeError("driver 2 crashed")
        service = make_driver_service(failures={(1, "run"): cause})
        runner = DriverRunner(three_unit_package, service)

        with pytest.raises(DriverOperationError) as exc_info:
            runner.run_tests(listener)

        assert exc_info.value.stage == "run"
        assert exc_info.value.cause is cause
        assert "while running tests" in str(exc_info.value)
        assert stages(service, "run") == [("run", 0, "<filter/>"), ("run", 1, "<filter/>")]
        # only the first driver got as far as reporting
        assert listener.events == [f'<start-suite id="{runner.drivers[0].id}" />']

    def test_engine_errors_are_not_wrapped(self, three_unit_package, make_driver_service):
        error = FormatError("bad filter")
        service = make_driver_service(failures={(0, "run"): error})

        with pytest.raises(FormatError) as exc_info:
            DriverRunner(three_unit_package, service).run_tests()

        assert exc_info.value is error


class TestPathRegistry:
    def isolated_runner(self, package, service, registry):
        package.add_setting(package_settings.REQUIRES_SHARED_RESOLVER, True)
        return DriverRunner(package, service, isolation_context=ISOLATED, path_registry=registry)

    def test_paths_registered_on_load_and_removed_after_run(self, three_unit_package, driver_service):
        registry = PathRegistry()
        runner = self.isolated_runner(three_unit_package, driver_service, registry)
        tests_dir = os.path.dirname(three_unit_package.sub_packages[0].full_name)

        runner.load()
        assert registry.paths == [tests_dir]

        runner.run_tests()
        assert len(registry) == 0

    def test_paths_kept_after_failed_run(self, three_unit_package, make_driver_service):
        registry = PathRegistry()
        service = make_driver_service(failures={(2, "run"): RuntimeError("late failure")})
        runner = self.isolated_runner(three_unit_package, service, registry)

        with pytest.raises(DriverOperationError):
            runner.run_tests()

        assert len(registry) == 1

    def test_default_context_does_not_register(self, three_unit_package, driver_service):
        registry = PathRegistry()
        three_unit_package.add_setting(package_settings.REQUIRES_SHARED_RESOLVER, True)
        runner = DriverRunner(
            three_unit_package,
            driver_service,
            isolation_context=IsolationContext("default", is_default=True),
            path_registry=registry,
        )

        runner.load()

        assert len(registry) == 0

    def test_only_flagged_units_register(self, three_unit_package, driver_service, tmp_path):
        registry = PathRegistry()
        other = PackageNode(str(tmp_path / "other" / "test_d.py"))
        three_unit_package.add_sub_package(other)
        other.add_setting(package_settings.REQUIRES_SHARED_RESOLVER, True)
        runner = DriverRunner(
            three_unit_package, driver_service, isolation_context=ISOLATED, path_registry=registry
        )

        runner.load()

        assert registry.paths == [str(tmp_path / "other")]


class TestStop:
    def test_stop_on_unloaded_package_loads_first(self, three_unit_package, driver_service):
        runner = DriverRunner(three_unit_package, driver_service)

        runner.request_stop()

        assert [c for c in driver_service.calls] == [
            ("load", 0), ("load", 1), ("load", 2),
            ("stop", 0, False), ("stop", 1, False), ("stop", 2, False),
        ]

    def test_force_stop(self, three_unit_package, driver_service):
        runner = DriverRunner(three_unit_package, driver_service)
        runner.load()

        runner.force_stop()

        assert stages(driver_service, "stop") == [("stop", 0, True), ("stop", 1, True), ("stop", 2, True)]

    def test_stop_failure_is_wrapped(self, three_unit_package, make_driver_service):
        service = make_driver_service(failures={(0, "stop"): RuntimeError("cannot stop")})

        with pytest.raises(DriverOperationError) as exc_info:
            DriverRunner(three_unit_package, service).force_stop()

        assert exc_info.value.stage == "stop"

    def test_stop_from_another_thread(self, id_generator):
        started = threading.Event()
        stopped = threading.Event()

        class BlockingDriver:
            def __init__(self):
                self.id = None

            def load(self, test_file, settings):
                return "<test-suite />"

            def run(self, listener, filter_text):
                started.set()
                if not stopped.wait(timeout=5):
                    return '<test-suite result="Passed" />'
                return '<test-suite result="Failed" label="Cancelled" />'

            def stop_run(self, force):
                stopped.set()

        class BlockingService:
            def get_driver(self, isolation_context, test_file, target_framework, skip_non_test_units):
                return BlockingDriver()

        package = PackageNode("/work/test_slow.py", id_generator=id_generator)
        runner = DriverRunner(package, BlockingService())
        runner.load()
        results = []

        worker = threading.Thread(target=lambda: results.append(runner.run_tests()))
        worker.start()
        assert started.wait(timeout=5)
        runner.request_stop()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert results[0].fragments == ['<test-suite result="Failed" label="Cancelled" />']

    def test_stop_during_first_load_waits_for_it(self, id_generator):
        load_started = threading.Event()
        finish_load = threading.Event()
        drivers = []

        class SlowLoadingDriver:
            def __init__(self):
                self.id = None
                self.calls = []

            def load(self, test_file, settings):
                self.calls.append("load")
                load_started.set()
                finish_load.wait(timeout=5)
                return "<test-suite />"

            def run(self, listener, filter_text):
                self.calls.append("run")
                return '<test-suite result="Passed" />'

            def stop_run(self, force):
                self.calls.append("stop")

        class SlowLoadingService:
            def get_driver(self, isolation_context, test_file, target_framework, skip_non_test_units):
                driver = SlowLoadingDriver()
                drivers.append(driver)
                return driver

        package = PackageNode("/work/test_slow.py", id_generator=id_generator)
        runner = DriverRunner(package, SlowLoadingService())

        run_worker = threading.Thread(target=runner.run_tests)
        run_worker.start()
        assert load_started.wait(timeout=5)

        stop_worker = threading.Thread(target=runner.request_stop)
        stop_worker.start()
        stop_worker.join(timeout=0.2)
        assert stop_worker.is_alive()

        finish_load.set()
        run_worker.join(timeout=5)
        stop_worker.join(timeout=5)

        assert not run_worker.is_alive()
        assert not stop_worker.is_alive()
        assert len(drivers) == 1
        assert sorted(drivers[0].calls) == ["load", "run", "stop"]
        assert runner.drivers == tuple(drivers)
