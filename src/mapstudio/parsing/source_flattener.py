"""Flatten a raw source document into an ordered list of leaf FieldPaths.

The input format is auto-detected: text starting with '<' is XML, anything
else is JSON. Flattening never fails the caller; an unparseable document
collapses to a single ``sourceSpec`` placeholder field.
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger
from lxml import etree

from mapstudio.models.fields import FieldPath, FieldType, looks_like_xml

FALLBACK_SOURCE_PATH = "sourceSpec"
ROOT_PATH = "root"

_JSON_DESCRIPTION = "Extracted from source JSON"
_XML_DESCRIPTION = "Extracted from source XML"

_UNDECLARED_NS = "urn:mapstudio:undeclared:"
_PREFIX_USE = re.compile(r"[<\s/]([A-Za-z_][\w.-]*):[A-Za-z_]")
_ROOT_START = re.compile(r"<([A-Za-z_][\w.:-]*)")


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def flatten_source(source_text: str | None) -> list[FieldPath]:
    """Flatten a JSON or XML source instance into leaf fields.

    Args:
        source_text: Raw source document text.

    Returns:
        Leaf FieldPaths in document order. Blank input yields an empty list;
        malformed input yields a single ``sourceSpec`` string field.
    """
    text = (source_text or "").strip()
    if not text:
        return []

    try:
        if looks_like_xml(text):
            fields = flatten_xml(text)
        else:
            fields = flatten_json(json.loads(text))
    except (ValueError, RecursionError, etree.XMLSyntaxError) as e:
        logger.warning("Source document could not be parsed, using placeholder field: {err}", err=e)
        return [
            FieldPath(
                path=FALLBACK_SOURCE_PATH,
                type=FieldType.STRING,
                description="Raw source input",
            )
        ]

    logger.debug("Flattened source document into {n} leaf fields", n=len(fields))
    return fields


def infer_type(value: Any) -> FieldType:
    """Map a decoded JSON scalar to its semantic FieldType."""
    if value is None:
        return FieldType.NULL
    # bool is a subclass of int
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    return FieldType.STRING


def flatten_json(node: Any, path: str = "") -> list[FieldPath]:
    """Recursively flatten a decoded JSON value.

    Object keys join with '.', array elements append '[i]'. A scalar at the
    document root is reported under the ``root`` path.
    """
    out: list[FieldPath] = []
    _walk_json(node, path, out)
    return out


def _walk_json(node: Any, path: str, out: list[FieldPath]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            child_path = f"{path}.{key}" if path else str(key)
            _walk_json(value, child_path, out)
        return
    if isinstance(node, list):
        for i, item in enumerate(node):
            _walk_json(item, f"{path}[{i}]", out)
        return

    out.append(
        FieldPath(
            path=path or ROOT_PATH,
            type=infer_type(node),
            description=_JSON_DESCRIPTION,
        )
    )


def _qualified_tag(element: etree._Element) -> str:
    """Tag name as written in the document (prefix:local), ignoring namespace URIs."""
    local = etree.QName(element).localname
    return f"{element.prefix}:{local}" if element.prefix else local


def flatten_xml(xml_text: str) -> list[FieldPath]:
    """Flatten an XML instance document into leaf element paths.

    Element names join with '.', starting from the root tag. An element with
    no element children and non-blank text becomes one ``string`` field.

    Prefixes used without a namespace declaration are bound to placeholder
    URIs and kept in the path as written.

    Raises:
        lxml.etree.XMLSyntaxError: If the document is malformed.
    """
    try:
        root = etree.fromstring(xml_text.encode("utf-8"), _xml_parser())
    except etree.XMLSyntaxError:
        patched = declare_unbound_prefixes(xml_text)
        if patched == xml_text:
            raise
        root = etree.fromstring(patched.encode("utf-8"), _xml_parser())
    out: list[FieldPath] = []
    _walk_xml(root, _qualified_tag(root), out)
    return out


def _walk_xml(element: etree._Element, path: str, out: list[FieldPath]) -> None:
    children = [child for child in element if isinstance(child.tag, str)]
    for child in children:
        _walk_xml(child, f"{path}.{_qualified_tag(child)}", out)

    if not children:
        value = "".join(element.itertext()).strip()
        if value:
            out.append(FieldPath(path=path, type=FieldType.STRING, description=_XML_DESCRIPTION))


def declare_unbound_prefixes(xml_text: str) -> str:
    """Declare every undeclared element/attribute prefix on the root start tag."""
    root_match = _ROOT_START.search(xml_text)
    if root_match is None:
        return xml_text

    prefixes: list[str] = []
    for prefix in _PREFIX_USE.findall(xml_text):
        if prefix in ("xml", "xmlns") or prefix in prefixes:
            continue
        if re.search(rf"xmlns:{re.escape(prefix)}\s*=", xml_text):
            continue
        prefixes.append(prefix)
    if not prefixes:
        return xml_text

    declarations = "".join(f' xmlns:{p}="{_UNDECLARED_NS}{p}"' for p in prefixes)
    end = root_match.end()
    return xml_text[:end] + declarations + xml_text[end:]
