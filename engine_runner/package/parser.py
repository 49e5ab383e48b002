"""YAML package definition parser.

Builds a PackageNode tree from a definition file such as:

    settings:
      SkipNonTestUnits: true
    files:
      - tests/test_models.py
    packages:
      - file: tests/test_api.py
        settings:
          TargetFrameworkName: pytest
      - files: [tests/slow/test_a.py, tests/slow/test_b.py]

Settings apply to the package and everything below it. A sub package's
own settings take precedence over the ones it inherits.
"""

import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .schema import IdGenerator, PackageNode

KNOWN_FIELDS = {"name", "file", "files", "packages", "settings"}
SCALAR_TYPES = (str, bool, int, float)


def parse_package_file(
    file_path: Union[str, Path],
    id_generator: Optional[IdGenerator] = None,
) -> PackageNode:
    """Parse a YAML package definition file into a package tree.

    Relative paths in the file are taken relative to the file's directory.

    Args:
        file_path: Path to the YAML definition file.
        id_generator: Source of package ids. Default: process-wide.

    Returns:
        Root PackageNode.

    Raises:
        FileNotFoundError: If the definition file doesn't exist.
        ValueError: If the YAML is malformed or has invalid fields.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Package definition not found: {file_path}")

    if file_path.suffix not in (".yaml", ".yml"):
        raise ValueError(f"Expected .yaml or .yml file, got: {file_path.suffix}")

    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise ValueError(f"Empty package definition: {file_path}")

    return parse_package_data(
        data,
        source=str(file_path),
        base_dir=file_path.parent,
        id_generator=id_generator,
    )


def parse_package_data(
    data: dict,
    source: str = "<inline>",
    base_dir: Optional[Union[str, Path]] = None,
    id_generator: Optional[IdGenerator] = None,
) -> PackageNode:
    """Parse a package tree from a dictionary (already loaded YAML).

    Args:
        data: Dictionary with the package definition.
        source: Source identifier for error messages.
        base_dir: Directory relative paths are resolved against.
            Default: current working directory.
        id_generator: Source of package ids.

    Returns:
        Root PackageNode.

    Raises:
        ValueError: If fields are missing or malformed.
    """
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    return _parse_node(data, "package", source, base, id_generator, {})


def _parse_node(
    data: Any,
    context: str,
    source: str,
    base: Path,
    id_generator: Optional[IdGenerator],
    inherited: dict[str, Any],
) -> PackageNode:
    if not isinstance(data, dict):
        raise ValueError(f"{context} must be a mapping in {source}, got {type(data).__name__}")

    unknown = set(data) - KNOWN_FIELDS
    if unknown:
        raise ValueError(
            f"Unknown field(s) {', '.join(sorted(unknown))} in {context} ({source})"
        )

    file_value = data.get("file")
    if file_value is not None:
        if not isinstance(file_value, str) or not file_value:
            raise ValueError(f"'file' must be a non-empty string in {context} ({source})")
        package = PackageNode(_resolve(file_value, base), id_generator=id_generator)
    else:
        package = PackageNode(None, id_generator=id_generator)

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        raise ValueError(f"'settings' must be a mapping in {context} ({source})")
    package.settings.update(inherited)
    for key, value in settings.items():
        if not isinstance(value, SCALAR_TYPES):
            raise ValueError(
                f"Setting '{key}' in {context} must be a scalar, "
                f"got {type(value).__name__} ({source})"
            )
        package.settings[str(key)] = value

    files = data.get("files", [])
    if not isinstance(files, list):
        raise ValueError(f"'files' must be a list in {context} ({source})")
    for i, entry in enumerate(files):
        if not isinstance(entry, str) or not entry:
            raise ValueError(f"{context}.files[{i}] must be a non-empty string ({source})")
        package.add_sub_package(PackageNode(_resolve(entry, base), id_generator=id_generator))

    packages = data.get("packages", [])
    if not isinstance(packages, list):
        raise ValueError(f"'packages' must be a list in {context} ({source})")
    for i, entry in enumerate(packages):
        # the sub package already carries our settings, and its own must not be overwritten
        package.sub_packages.append(_parse_node(
            entry, f"{context}.packages[{i}]", source, base, id_generator, package.settings
        ))

    return package


def _resolve(path: str, base: Path) -> str:
    expanded = os.path.expanduser(path)
    if os.path.isabs(expanded):
        return expanded
    return str(base / expanded)
