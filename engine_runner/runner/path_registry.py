"""Shared registry of directories used to resolve dependencies of loaded units."""

import os
import threading
from typing import Optional


class PathRegistry:
    """An ordered set of directories, safe to share between runners.

    Adding a directory that is already present, or removing one that
    isn't, does nothing.
    """

    def __init__(self):
        self._paths: dict[str, None] = {}
        self._lock = threading.Lock()

    def add_path(self, path: str) -> None:
        with self._lock:
            self._paths.setdefault(os.path.abspath(path), None)

    def remove_path(self, path: str) -> None:
        with self._lock:
            self._paths.pop(os.path.abspath(path), None)

    def add_path_from_file(self, file_path: str) -> None:
        """Register the directory containing file_path."""
        self.add_path(os.path.dirname(os.path.abspath(file_path)))

    def remove_path_from_file(self, file_path: str) -> None:
        self.remove_path(os.path.dirname(os.path.abspath(file_path)))

    @property
    def paths(self) -> list[str]:
        with self._lock:
            return list(self._paths)

    def resolve(self, filename: str) -> Optional[str]:
        """Find filename in the registered directories.

        Returns:
            Full path of the first match, or None.
        """
        for directory in self.paths:
            candidate = os.path.join(directory, filename)
            if os.path.exists(candidate):
                return candidate
        return None

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        with self._lock:
            return os.path.abspath(path) in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)
