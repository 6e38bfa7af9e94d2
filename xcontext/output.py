"""
Serialization (JSON, YAML, XML) and output destinations.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

import pyperclip
import yaml

from xcontext.errors import FileWriteError, SerializationError

logger = logging.getLogger(__name__)

XML_ROOT = "ProjectContext"
_XML_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")

FORMAT_EXTENSIONS = {"json": "json", "yaml": "yaml", "yml": "yaml", "xml": "xml"}


def normalize_format(fmt: str) -> str:
    """Canonical format name; unknown names fall back to json."""
    fmt = (fmt or "json").lower()
    if fmt == "yml":
        return "yaml"
    if fmt in ("yaml", "xml"):
        return fmt
    return "json"


# =============================================================================
# SERIALIZERS
# =============================================================================

def to_json(data: Any, pretty: bool = False) -> str:
    try:
        if pretty:
            return json.dumps(data, indent=2, ensure_ascii=False)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"JSON serialization failed: {e}") from e


def to_yaml(data: Any) -> str:
    try:
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, width=120)
    except yaml.YAMLError as e:
        raise SerializationError(f"YAML serialization failed: {e}") from e


def _xml_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append_xml(parent: ET.Element, key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _append_xml(parent, key, item)
        return

    if _XML_NAME_RE.match(key) and not key.lower().startswith("xml"):
        element = ET.SubElement(parent, key)
    else:
        element = ET.SubElement(parent, "entry", {"key": key})

    if isinstance(value, dict):
        for child_key, child_value in value.items():
            _append_xml(element, str(child_key), child_value)
    else:
        element.text = _xml_text(value)


def to_xml(data: Any, root_name: str = XML_ROOT, pretty: bool = False) -> str:
    """Render mappings as nested elements; list items repeat their element."""
    root = ET.Element(root_name)
    try:
        if isinstance(data, dict):
            for key, value in data.items():
                _append_xml(root, str(key), value)
        elif isinstance(data, (list, tuple)):
            _append_xml(root, "item", list(data))
        else:
            root.text = _xml_text(data)
        if pretty:
            ET.indent(root, space="    ")
        return ET.tostring(root, encoding="unicode")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"XML serialization failed: {e}") from e


def serialize(
    data: Any,
    fmt: str,
    pretty_json: bool = False,
    pretty_xml: bool = False,
    xml_root: str = XML_ROOT,
) -> str:
    """Serialize plain data to the named format."""
    fmt = normalize_format(fmt)
    if fmt == "yaml":
        return to_yaml(data)
    if fmt == "xml":
        return to_xml(data, xml_root, pretty_xml)
    return to_json(data, pretty_json)


# =============================================================================
# OUTPUT WRITER
# =============================================================================

class OutputWriter:
    """Handles output to a file, stdout or the clipboard."""

    @staticmethod
    def write_file(path: Path, content: str) -> None:
        """Write content, creating parent directories."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FileWriteError(path, e) from e
        logger.debug(f"Wrote {len(content)} chars to {path}")

    @staticmethod
    def write_stdout(content: str) -> None:
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
        sys.stdout.flush()

    @staticmethod
    def copy_to_clipboard(content: str, quiet: bool = False) -> bool:
        """Copy to clipboard, falling back to stdout when unavailable."""
        try:
            pyperclip.copy(content)
        except pyperclip.PyperclipException as e:
            print(f"⚠️ Clipboard unavailable ({e}), printing to stdout", file=sys.stderr)
            OutputWriter.write_stdout(content)
            return False
        if not quiet:
            print(f"✅ {len(content):,} chars copied to clipboard", file=sys.stderr)
        return True
