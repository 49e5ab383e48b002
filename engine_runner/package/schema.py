"""Package tree data model.

A PackageNode describes what the engine should load. Leaf nodes point at
a single loadable unit (a test module or archive); structural nodes group
sub packages. Every node gets an id when it is created, which drivers use
to prefix the ids of the tests they report, so the id never changes for
the lifetime of the node.
"""

import itertools
import os
import threading
from typing import Any, Callable, Iterable, Iterator, Optional

from ..errors import TypeMismatchError


LOADABLE_SUFFIXES = (".py", ".pyz", ".zip", ".whl", ".egg")
PROJECT_SUFFIXES = (".yaml", ".yml", ".xml")


class IdGenerator:
    """Hands out package ids: "0", "1", "2", ...

    One default instance lives for the whole process. Tests inject their
    own to get predictable ids.
    """

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return str(next(self._counter))


default_id_generator = IdGenerator()


class PackageNode:
    """A node in the package tree.

    Settings may be changed freely, but only add_setting() pushes a value
    down to the sub packages. Writing to the settings dict directly only
    affects this node.
    """

    def __init__(
        self,
        file_path: Optional[str] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        """Create a named package.

        Args:
            file_path: Path to the unit or package definition. None creates
                a package without a full name.
            id_generator: Source of the package id. Default: process-wide.
        """
        self._id: Optional[str] = (id_generator or default_id_generator).next_id()
        self._full_name: Optional[str] = (
            os.path.abspath(file_path) if file_path is not None else None
        )
        self.sub_packages: list[PackageNode] = []
        self.settings: dict[str, Any] = {}

    @classmethod
    def from_files(
        cls,
        file_paths: Iterable[str],
        id_generator: Optional[IdGenerator] = None,
    ) -> "PackageNode":
        """Create an anonymous package holding one named package per file."""
        package = cls(None, id_generator=id_generator)
        for file_path in file_paths:
            package.sub_packages.append(cls(file_path, id_generator=id_generator))
        return package

    @classmethod
    def empty(cls) -> "PackageNode":
        """Create a package with neither id nor full name.

        Used when the id comes from somewhere else, e.g. a serialized package.
        """
        package = cls.__new__(cls)
        package._id = None
        package._full_name = None
        package.sub_packages = []
        package.settings = {}
        return package

    @classmethod
    def _restore(cls, package_id: Optional[str], full_name: Optional[str]) -> "PackageNode":
        """Recreate a package with an id and full name read back from storage."""
        package = cls.empty()
        package._id = package_id
        package._full_name = full_name
        return package

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def full_name(self) -> Optional[str]:
        """Absolute path of the unit or definition file, if any."""
        return self._full_name

    @property
    def name(self) -> Optional[str]:
        """Last path component of full_name."""
        if self._full_name is None:
            return None
        return os.path.basename(self._full_name)

    def has_sub_packages(self) -> bool:
        return len(self.sub_packages) > 0

    def add_sub_package(self, sub_package: "PackageNode") -> None:
        """Append a sub package and copy this package's current settings into it."""
        self.sub_packages.append(sub_package)
        for key, value in self.settings.items():
            sub_package.settings[key] = value

    def add_setting(self, name: str, value: Any) -> None:
        """Set a value on this package and every package below it."""
        seen: set[int] = set()
        stack = [self]
        while stack:
            package = stack.pop()
            if id(package) in seen:
                continue
            seen.add(id(package))
            package.settings[name] = value
            # reversed so sub packages are visited in order
            stack.extend(reversed(package.sub_packages))

    def get_setting(
        self,
        name: str,
        default: Any = None,
        expected_type: Optional[type] = None,
    ) -> Any:
        """Return a setting, or default when it is not set.

        Args:
            name: Setting name.
            default: Returned when the setting is absent.
            expected_type: Type the value must have. Defaults to the type
                of ``default`` when that is not None.

        Raises:
            TypeMismatchError: If the stored value has another type.
        """
        if name not in self.settings:
            return default

        value = self.settings[name]
        if expected_type is None and default is not None:
            expected_type = type(default)
        if expected_type is not None and not _is_instance(value, expected_type):
            raise TypeMismatchError(name, expected_type, value)
        return value

    def walk(self) -> Iterator["PackageNode"]:
        """Iterate over this package and all packages below it, pre-order."""
        stack = [self]
        while stack:
            package = stack.pop()
            yield package
            stack.extend(reversed(package.sub_packages))

    def select(self, predicate: Callable[["PackageNode"], bool]) -> list["PackageNode"]:
        """Return every package in the tree matching predicate, pre-order."""
        return [package for package in self.walk() if predicate(package)]

    def __repr__(self) -> str:
        return (
            f"PackageNode(id={self._id!r}, full_name={self._full_name!r}, "
            f"sub_packages={len(self.sub_packages)})"
        )


def _is_instance(value: Any, expected_type: type) -> bool:
    # bool is an int subclass, but a flag is never a count
    if expected_type is int and isinstance(value, bool):
        return False
    if expected_type is bool:
        return isinstance(value, bool)
    return isinstance(value, expected_type)


def is_leaf(package: PackageNode) -> bool:
    """A terminal package backed by a single unit."""
    return not package.has_sub_packages() and package.full_name is not None


def is_loadable_unit(package: PackageNode) -> bool:
    """A package whose full name is a loadable test unit."""
    return (
        package.full_name is not None
        and package.full_name.lower().endswith(LOADABLE_SUFFIXES)
    )


def is_project(package: PackageNode) -> bool:
    """A package whose full name is a package definition file."""
    return (
        package.full_name is not None
        and package.full_name.lower().endswith(PROJECT_SUFFIXES)
    )
