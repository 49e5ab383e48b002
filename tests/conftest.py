"""Pytest configuration and shared fixtures."""
import pytest

from engine_runner.package import settings as package_settings
from engine_runner.package.schema import IdGenerator, PackageNode


class FakeDriver:
    """Driver that records every call in its service's call log."""

    def __init__(self, index, test_file, service):
        self.id = None
        self.index = index
        self.test_file = test_file
        self.service = service
        self.loaded_settings = None

    def _record(self, stage, *args):
        self.service.calls.append((stage, self.index) + args)
        error = self.service.failures.get((self.index, stage))
        if error is not None:
            raise error

    def load(self, test_file, settings):
        self._record("load")
        self.loaded_settings = dict(settings)
        return f'<test-suite id="{self.id}" fullname="{test_file}" />'

    def explore(self, filter_text):
        self._record("explore", filter_text)
        return f'<test-suite id="{self.id}" testcasecount="{self.count}" />'

    def count_test_cases(self, filter_text):
        self._record("count", filter_text)
        return self.count

    def run(self, listener, filter_text):
        self._record("run", filter_text)
        if listener is not None:
            listener.on_test_event(f'<start-suite id="{self.id}" />')
        return f'<test-suite id="{self.id}" result="Passed" />'

    def stop_run(self, force):
        self._record("stop", force)

    @property
    def count(self):
        return self.service.counts.get(self.index, 2)


class FakeDriverService:
    """Hands out FakeDrivers and remembers how it was asked for them."""

    def __init__(self, failures=None, counts=None):
        self.failures = failures or {}
        self.counts = counts or {}
        self.calls = []
        self.requests = []
        self.drivers = []

    def get_driver(self, isolation_context, test_file, target_framework, skip_non_test_units):
        self.requests.append((isolation_context, test_file, target_framework, skip_non_test_units))
        driver = FakeDriver(len(self.drivers), test_file, self)
        self.drivers.append(driver)
        return driver


class RecordingListener:
    """Collects test events."""

    def __init__(self):
        self.events = []

    def on_test_event(self, report):
        self.events.append(report)


@pytest.fixture
def id_generator():
    """Provide a fresh id generator starting at 0."""
    return IdGenerator()


@pytest.fixture
def driver_service():
    return FakeDriverService()


@pytest.fixture
def make_driver_service():
    """Build a FakeDriverService with scripted failures or counts."""
    return FakeDriverService


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def three_unit_package(id_generator, tmp_path):
    """Anonymous package with three test modules under tmp_path/tests."""
    files = [str(tmp_path / "tests" / f"test_{name}.py") for name in ("a", "b", "c")]
    return PackageNode.from_files(files, id_generator=id_generator)


@pytest.fixture
def nested_package(id_generator):
    """Tree mixing structural and terminal packages at several depths.

        root
        ├── /work/unit/test_models.py
        ├── group
        │   ├── /work/api/test_http.py
        │   └── project.yaml
        │       └── /work/slow/test_io.py
        └── /work/test_cli.py
    """
    root = PackageNode(None, id_generator=id_generator)
    root.add_sub_package(PackageNode("/work/unit/test_models.py", id_generator=id_generator))

    group = PackageNode(None, id_generator=id_generator)
    group.add_sub_package(PackageNode("/work/api/test_http.py", id_generator=id_generator))
    project = PackageNode("/work/project.yaml", id_generator=id_generator)
    project.add_sub_package(PackageNode("/work/slow/test_io.py", id_generator=id_generator))
    group.add_sub_package(project)
    root.add_sub_package(group)

    root.add_sub_package(PackageNode("/work/test_cli.py", id_generator=id_generator))
    root.add_setting(package_settings.WORK_DIRECTORY, "/work")
    return root
