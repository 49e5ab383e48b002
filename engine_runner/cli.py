"""CLI entry point for engine-runner.

    engine-runner encode tests/test_a.py tests/test_b.py -s SkipNonTestUnits=True
    engine-runner convert package.yaml -o package.xml
    engine-runner validate package.xml
    engine-runner show package.yaml
"""

import json
from pathlib import Path
from typing import Any, Optional

import click

from .config import configure_logging
from .errors import EngineError
from .package.codec import encode, parse_setting_value, read_package, write_package
from .package.parser import parse_package_file
from .package.schema import PackageNode
from .package.validator import validate_package


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for messages written to stderr.",
)
def main(log_level: str):
    """Build, convert and inspect test packages."""
    configure_logging(log_level)


@main.command("encode")
@click.argument("files", nargs=-1, required=True)
@click.option("-s", "--setting", "settings", multiple=True, metavar="KEY=VALUE",
              help="Setting applied to the package and all its sub packages.")
@click.option("--compact", is_flag=True, help="Don't indent the XML.")
def encode_command(files: tuple[str, ...], settings: tuple[str, ...], compact: bool):
    """Build an anonymous package holding FILES and print it as XML."""
    package = PackageNode.from_files(files)

    for item in settings:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="--setting")
        package.add_setting(name, parse_setting_value(value))

    try:
        click.echo(encode(package, pretty=not compact))
    except EngineError as e:
        raise click.ClickException(str(e))


@main.command("convert")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Write the XML to this file instead of stdout.")
def convert_command(definition: str, output: Optional[str]):
    """Convert a YAML package definition to XML."""
    try:
        package = parse_package_file(definition)
    except ValueError as e:
        raise click.ClickException(str(e))

    try:
        if output:
            path = write_package(package, output)
            click.echo(f"Package written: {path}")
        else:
            click.echo(encode(package))
    except EngineError as e:
        raise click.ClickException(str(e))


@main.command("validate")
@click.argument("package_file", type=click.Path(exists=True, dir_okay=False))
def validate_command(package_file: str):
    """Validate a package file (.xml or .yaml) and print the result as JSON."""
    try:
        package = load_package(package_file)
    except (EngineError, ValueError) as e:
        output_error(f"Failed to read package: {e}", command="validate")
        raise SystemExit(1)

    validation = validate_package(package)
    data = {
        "package": package_file,
        "packages": sum(1 for _ in package.walk()),
        "errors": [{"path": e.path, "message": e.message} for e in validation.errors],
        "warnings": [{"path": w.path, "message": w.message} for w in validation.warnings],
    }
    output = {
        "success": validation.valid,
        "command": "validate",
        "data": data,
        "message": str(validation),
    }
    click.echo(json.dumps(output, ensure_ascii=False))

    if not validation.valid:
        raise SystemExit(1)


@main.command("show")
@click.argument("package_file", type=click.Path(exists=True, dir_okay=False))
def show_command(package_file: str):
    """Print the package tree of a package file."""
    try:
        package = load_package(package_file)
    except (EngineError, ValueError) as e:
        raise click.ClickException(f"Failed to read package: {e}")

    for line in format_tree(package):
        click.echo(line)


def load_package(file_path: str) -> PackageNode:
    """Read a package from an XML file or a YAML definition."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".xml":
        return read_package(file_path)
    if suffix in (".yaml", ".yml"):
        return parse_package_file(file_path)
    raise ValueError(f"Unsupported package file type: {suffix or file_path}")


def format_tree(package: PackageNode, depth: int = 0) -> list[str]:
    """Render a package tree as indented lines."""
    indent = "  " * depth
    label = package.name or "(anonymous)"
    lines = [f"{indent}[{package.id}] {label}"]
    for key, value in package.settings.items():
        lines.append(f"{indent}    {key} = {value!r}")
    for sub_package in package.sub_packages:
        lines.extend(format_tree(sub_package, depth + 1))
    return lines


def output_error(message: str, command: str = "", **extra: Any):
    """Output error in flow JSON format."""
    output = {
        "success": False,
        "command": command,
        "data": extra or None,
        "message": message,
    }
    click.echo(json.dumps(output, ensure_ascii=False))


if __name__ == "__main__":
    main()
