"""
Bridges JSON, YAML, TOML and XML documents to structure values.

Decoding parses text into native Python data and converts it with
`Value.from_any`; encoding renders `Value.to_any()` back out. Dict keys
starting with `@` become attributes, so `{"@point": null, "x": 1}` reads
as a record tagged `point`.
"""
from __future__ import annotations

import base64
import collections.abc
import datetime
import json
import logging
import re
import tomllib
import xml.parsers.expat
from typing import Any, Optional

import toml
import xmltodict
import yaml

from structure.structure_item import Item, Text, Value

logger = logging.getLogger(__name__)


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        try:
            return data.decode(encoding or 'utf-8', errors='replace')
        except LookupError:
            return data.decode('utf-8', errors='replace')
    return data


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def _to_native(obj: Any) -> Any:
    # Plain dicts/lists/scalars that Value.from_any accepts.
    if isinstance(obj, list):
        return [_to_native(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {str(k): _to_native(v) for k, v in obj.items()}
    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()
    return obj


def _to_builtin(obj: Any) -> Any:
    # The reverse direction: what the encoders can write.
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: _to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode('ascii')
    if isinstance(obj, Item):
        return repr(obj)
    return obj


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml', 'toml', 'xml'.
    Uses the content type (or a file suffix) first; falls back to sniffing the data.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct or 'yml' in ct:
        return 'yaml'
    if 'toml' in ct:
        return 'toml'
    if 'xml' in ct or 'html' in ct:
        return 'xml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        if s.startswith('<'):
            return 'xml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None) -> Value:
    """
    Decode a document into a structure value.
    Supported fmt: 'json', 'yaml', 'toml', 'xml'.
    If fmt is None, uses content_type, then sniffing.
    Unknown formats and undecodable documents come back as `Text`.
    """
    text = _norm_text(data, encoding=_encoding_from_content_type(content_type))
    f = fmt or detect_format(content_type, text)
    if f == 'json':
        try:
            return Value.from_any(_to_native(json.loads(text)))
        except json.JSONDecodeError as exc:
            # Declared JSON is frequently YAML-flavoured; YAML is a superset.
            logger.debug("JSON decode failed (%s); retrying as YAML", exc)
            f = 'yaml'
    if f == 'yaml':
        try:
            return Value.from_any(_to_native(yaml.safe_load(text)))
        except yaml.YAMLError as exc:
            logger.debug("YAML decode failed: %s", exc)
            return Text.of(text)
    if f == 'toml':
        try:
            return Value.from_any(_to_native(tomllib.loads(text)))
        except tomllib.TOMLDecodeError as exc:
            logger.debug("TOML decode failed: %s", exc)
            return Text.of(text)
    if f == 'xml':
        try:
            return Value.from_any(_to_native(xmltodict.parse(text)))
        except xml.parsers.expat.ExpatError as exc:
            logger.debug("XML decode failed: %s", exc)
            return Text.of(text)

    return Text.of(text)


def serialize(value: Any,
              *,
              fmt: str,
              pretty: bool = True,
              xml_root: str = "root") -> str:
    """
    Render a structure value (or plain data) as text.
    - fmt: 'json' | 'yaml' | 'toml' | 'xml'
    - For XML, if the value is not a dict, it is wrapped under {xml_root: value}
    """
    f = (fmt or '').lower()
    built = _to_builtin(Item.from_any(value).to_any())
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    if f == 'toml':
        if not isinstance(built, dict):
            built = {xml_root: built}
        return toml.dumps(built)
    if f == 'xml':
        root: dict
        if isinstance(built, dict) and len(built) == 1:
            root = built
        else:
            root = {xml_root: built}
        return xmltodict.unparse(root, pretty=pretty)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
]
