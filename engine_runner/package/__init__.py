"""Package module - test package tree, serialization and definition files."""

from .schema import (
    IdGenerator,
    PackageNode,
    default_id_generator,
    is_leaf,
    is_loadable_unit,
    is_project,
)
from .codec import decode, encode, read_package, write_package
from .parser import parse_package_data, parse_package_file
from .validator import ValidationError, ValidationResult, validate_package

__all__ = [
    "IdGenerator",
    "PackageNode",
    "default_id_generator",
    "is_leaf",
    "is_loadable_unit",
    "is_project",
    "decode",
    "encode",
    "read_package",
    "write_package",
    "parse_package_data",
    "parse_package_file",
    "ValidationError",
    "ValidationResult",
    "validate_package",
]
