"""Package tree validator.

Checks a PackageNode tree for problems the runner would otherwise only
discover while loading drivers.
"""

import os
from dataclasses import dataclass, field

from .schema import PackageNode, is_loadable_unit
from .settings import NAME_PATTERN, SETTING_TYPES

SCALAR_TYPES = (str, bool, int, float)


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of package validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"


def validate_package(package: PackageNode) -> ValidationResult:
    """Validate a package tree.

    Checks:
    - Every package has an id, and no id is used twice
    - Leaves name a unit, preferably an existing loadable one
    - Settings hold scalar values of the expected type

    Args:
        package: Root of the tree to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []
    seen_ids: dict[str, str] = {}

    _validate_node(package, "package", seen_ids, errors, warnings)

    if not package.has_sub_packages() and package.full_name is None:
        warnings.append(ValidationError(
            path="package",
            message="Package is empty. Nothing will be loaded.",
            severity="warning",
        ))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_node(
    package: PackageNode,
    path: str,
    seen_ids: dict[str, str],
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if package.id is None:
        errors.append(ValidationError(
            path=f"{path}.id",
            message="Package has no id.",
        ))
    elif package.id in seen_ids:
        errors.append(ValidationError(
            path=f"{path}.id",
            message=f"Duplicate id '{package.id}', already used by {seen_ids[package.id]}.",
        ))
    else:
        seen_ids[package.id] = path

    _validate_settings(package, path, errors)

    if package.has_sub_packages():
        for i, sub_package in enumerate(package.sub_packages):
            _validate_node(sub_package, f"{path}.sub_packages[{i}]", seen_ids, errors, warnings)
        return

    # leaf
    if package.full_name is None:
        if path != "package":
            errors.append(ValidationError(
                path=f"{path}.full_name",
                message="Leaf package has no full name. There is nothing to load.",
            ))
        return

    if not os.path.exists(package.full_name):
        warnings.append(ValidationError(
            path=f"{path}.full_name",
            message=f"File not found: {package.full_name}",
            severity="warning",
        ))

    if not is_loadable_unit(package):
        warnings.append(ValidationError(
            path=f"{path}.full_name",
            message=f"'{package.name}' is not a recognised test unit.",
            severity="warning",
        ))


def _validate_settings(
    package: PackageNode,
    path: str,
    errors: list[ValidationError],
) -> None:
    for key, value in package.settings.items():
        if not isinstance(key, str) or not NAME_PATTERN.match(key):
            errors.append(ValidationError(
                path=f"{path}.settings.{key}",
                message=f"Invalid setting name {key!r}. Names must be valid XML attribute names.",
            ))
            continue

        if not isinstance(value, SCALAR_TYPES):
            errors.append(ValidationError(
                path=f"{path}.settings.{key}",
                message=f"Setting value must be a scalar, got {type(value).__name__}.",
            ))
            continue

        expected = SETTING_TYPES.get(key)
        if expected is not None and type(value) is not expected:
            errors.append(ValidationError(
                path=f"{path}.settings.{key}",
                message=f"Setting '{key}' must be {expected.__name__}, got {type(value).__name__}.",
            ))
