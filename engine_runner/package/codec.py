"""XML serialization of package trees.

Format:

    <TestPackage id="0">
      <Settings SkipNonTestUnits="True" />
      <TestPackage id="1" fullname="/work/tests/test_a.py" />
      <TestPackage id="2" fullname="/work/tests/test_b.py" />
    </TestPackage>

Each package parses only its own <Settings> block; nothing is copied down
to sub packages while reading.
"""

import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Iterator, Union

from ..errors import FormatError
from .schema import PackageNode
from .settings import NAME_PATTERN

PACKAGE_TAG = "TestPackage"
SETTINGS_TAG = "Settings"

_INT_PATTERN = re.compile(r"^-?\d+$")


def encode(package: PackageNode, pretty: bool = True) -> str:
    """Serialize a package tree to an XML string.

    Setting values are written with str(). When read back, "True"/"False"
    become bools and canonical integers such as "12" become ints, so a str
    setting with one of those values comes back as a bool or an int.

    Args:
        package: Root of the tree.
        pretty: If True, indent nested elements.

    Returns:
        XML text with a single root TestPackage element.

    Raises:
        FormatError: If a setting name is not a valid XML attribute name.
    """
    root = _build_element(package)
    if pretty:
        ET.indent(root)
    return ET.tostring(root, encoding="unicode")


def decode(text: str) -> PackageNode:
    """Parse an XML string produced by encode() back into a package tree.

    Raises:
        FormatError: If the text is not a well-formed package document.
    """
    events = _read_events(text)
    for event, item in events:
        if event == "start" and item.tag == PACKAGE_TAG:
            package = _read_package(events, item)
            for event, item in events:
                raise FormatError(f"Unexpected {_describe(event, item)} after <{PACKAGE_TAG}> root element")
            return package
        raise FormatError(f"Expected <{PACKAGE_TAG}> root element, got {_describe(event, item)}")
    raise FormatError("Empty package document")


def write_package(package: PackageNode, path: Union[str, Path]) -> Path:
    """Write a package tree to an XML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(encode(package))
        f.write("\n")

    return path


def read_package(path: Union[str, Path]) -> PackageNode:
    """Read a package tree from an XML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        FormatError: If the file content is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Package file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return decode(f.read())


def _build_element(package: PackageNode) -> ET.Element:
    element = ET.Element(PACKAGE_TAG)
    element.set("id", package.id if package.id is not None else "")
    if package.full_name is not None:
        element.set("fullname", package.full_name)

    if package.settings:
        for key in package.settings:
            if not NAME_PATTERN.match(key):
                raise FormatError(f"Setting name {key!r} is not a valid XML attribute name")
        ET.SubElement(
            element,
            SETTINGS_TAG,
            {key: str(value) for key, value in package.settings.items()},
        )

    for sub_package in package.sub_packages:
        element.append(_build_element(sub_package))

    return element


def _read_events(text: str) -> Iterator[tuple[str, Any]]:
    parser = ET.XMLPullParser(events=("start", "end", "comment", "pi"))
    try:
        parser.feed(text)
        yield from parser.read_events()
        parser.close()
    except ET.ParseError as e:
        raise FormatError(f"Invalid package XML: {e}") from e
    yield from parser.read_events()


def _read_package(events: Iterator[tuple[str, Any]], element: ET.Element) -> PackageNode:
    """Build a package from its start tag up to and including its end tag."""
    package = PackageNode._restore(element.get("id") or None, element.get("fullname"))

    for event, item in events:
        if event == "start" and item.tag == SETTINGS_TAG:
            for key, value in item.attrib.items():
                package.settings[key] = parse_setting_value(value)
            _read_settings_end(events, item)

        elif event == "start" and item.tag == PACKAGE_TAG:
            package.sub_packages.append(_read_package(events, item))

        elif event == "end" and item is element:
            _check_no_text(element)
            return package

        else:
            raise FormatError(f"Unexpected {_describe(event, item)} in <{PACKAGE_TAG}>")

    raise FormatError(f"Invalid XML: <{PACKAGE_TAG}> element not terminated")


def _read_settings_end(events: Iterator[tuple[str, Any]], element: ET.Element) -> None:
    for event, item in events:
        if event == "end" and item is element:
            _check_no_text(element)
            return
        raise FormatError(f"Unexpected {_describe(event, item)} in <{SETTINGS_TAG}>")
    raise FormatError(f"Invalid XML: <{SETTINGS_TAG}> element not terminated")


def _check_no_text(element: ET.Element) -> None:
    texts = [element.text] + [child.tail for child in element]
    for text in texts:
        if text and text.strip():
            raise FormatError(f"Unexpected text {text.strip()!r} in <{element.tag}>")


def _describe(event: str, item: Any) -> str:
    if event == "start":
        return f"element <{item.tag}>"
    if event == "end":
        return f"end of <{item.tag}>"
    return event


def parse_setting_value(text: str) -> Any:
    """Recover a setting value from its string form.

    "True"/"False" become bools and integers written the way str() writes
    them become ints. Everything else, "007" and "+5" included, stays a
    string.
    """
    if text == "True":
        return True
    if text == "False":
        return False
    if _INT_PATTERN.match(text) and str(int(text)) == text:
        return int(text)
    return text
