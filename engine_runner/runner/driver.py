"""Driver interfaces used by the runner.

A driver is bound to one loadable unit for its whole lifetime and is
responsible for finding, counting, running and stopping the tests in it.
Concrete drivers live outside this package; the runner depends only on
the FrameworkDriver protocol.
"""

import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class TestEventListener(Protocol):
    """Receives progress reports from a driver during a run.

    Reports are passed through by the runner without being read.
    """

    def on_test_event(self, report: str) -> None: ...


@runtime_checkable
class FrameworkDriver(Protocol):
    """A test framework driver bound to a single unit.

    The runner sets ``id`` to the id of the package the driver serves
    before calling ``load``. Result fragments are XML strings.
    """

    id: Optional[str]

    def load(self, test_file: str, settings: Mapping[str, Any]) -> str: ...

    def explore(self, filter_text: str) -> str: ...

    def count_test_cases(self, filter_text: str) -> int: ...

    def run(self, listener: Optional[TestEventListener], filter_text: str) -> str: ...

    def stop_run(self, force: bool) -> None:
        """Stop a run in progress. Without an active run this does nothing.

        May be called from another thread while ``run`` is executing.
        """
        ...


@dataclass(frozen=True)
class TestFilter:
    """A test selection expression, handed to drivers as-is."""
    __test__ = False  # not a pytest test class

    text: str

    @classmethod
    def empty(cls) -> "TestFilter":
        return cls("<filter/>")

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class IsolationContext:
    """The execution boundary drivers are created in.

    The runner only needs to know whether it is the default context.
    """
    name: str
    is_default: bool = False


DEFAULT_CONTEXT = IsolationContext("default", is_default=True)


class NotRunnableDriver:
    """Stands in for a unit that no driver can handle.

    Every call succeeds and reports the unit as not runnable, so one bad
    unit doesn't prevent the rest of a package from running.
    """

    RUN_STATE = "NotRunnable"
    RESULT = "Failed"
    LABEL = "Invalid"

    def __init__(self, test_file: Optional[str], message: str):
        self.id: Optional[str] = None
        self.test_file = test_file
        self.message = message

    def load(self, test_file: str, settings: Mapping[str, Any]) -> str:
        return self._suite()

    def explore(self, filter_text: str) -> str:
        return self._suite()

    def count_test_cases(self, filter_text: str) -> int:
        return 0

    def run(self, listener: Optional[TestEventListener], filter_text: str) -> str:
        return self._suite(result=self.RESULT, label=self.LABEL)

    def stop_run(self, force: bool) -> None:
        pass

    def _suite(self, result: Optional[str] = None, label: Optional[str] = None) -> str:
        suite = ET.Element("test-suite", {
            "type": "Module",
            "id": f"{self.id}-1",
            "name": os.path.basename(self.test_file) if self.test_file else "",
            "fullname": self.test_file or "",
            "runstate": self.RUN_STATE,
            "testcasecount": "0",
        })
        if result is not None:
            suite.set("result", result)
            suite.set("label", label or "")
            suite.set("total", "0")
        properties = ET.SubElement(suite, "properties")
        ET.SubElement(properties, "property", {"name": "_SKIPREASON", "value": self.message})
        return ET.tostring(suite, encoding="unicode")


class SkippedDriver(NotRunnableDriver):
    """Stands in for a unit that was recognised as containing no tests."""

    RUN_STATE = "Runnable"
    RESULT = "Skipped"
    LABEL = "NoTests"

    def __init__(self, test_file: Optional[str]):
        super().__init__(test_file, "Skipping non-test unit")
