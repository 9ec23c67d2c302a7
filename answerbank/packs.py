"""
Answerbank pack documents

A pack is a JSON object identified by pack_metadata.pack_id and stored as a
single pretty-printed object at packs/<pack_id>.json.
"""

import json
import math
import re
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .exceptions import BadRequest

PACK_PREFIX = "packs/"
PACK_SUFFIX = ".json"
PACK_CONTENT_TYPE = "application/json; charset=utf-8"
PACK_LIST_LIMIT = 100

# Placeholders that make otherwise-empty prefixes visible in listings
FOLDER_PLACEHOLDERS = [
    "evidence/.keep",
    "evidence/plat_menterprise/.keep",
    "packs/.keep",
    "packs/all-platforms/.keep",
    "packs/plat_menterprise/.keep",
]
PLACEHOLDER_VALUE = "keep"

BYTE_ORDER_MARK = "\ufeff"

# JS trim() also treats U+FEFF as whitespace
_SURROUNDING_WHITESPACE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")

# Largest integer a JS number holds exactly
_MAX_SAFE_INTEGER = 2**53 - 1

# Keys below this that look like integers are array indices to a JS object
_MAX_ARRAY_INDEX = 2**32 - 1

# JSON.stringify escapes unpaired surrogates instead of emitting them raw
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


class InvalidPackJSON(BadRequest):
    def __init__(self, reason: str):
        super().__init__(f"Invalid JSON body: {reason}")


class MissingPackId(BadRequest):
    def __init__(self):
        super().__init__("Missing pack_metadata.pack_id")


def _reject_constant(name: str):
    raise ValueError(f"Unexpected token {name} in JSON")


def _parse_number(text: str):
    # JS has a single number type: 1.0 and 1 are the same value, integers past
    # 2**53 lose precision, and literals too large for a double end up as null
    value = float(text)
    if not math.isfinite(value):
        return None
    if value.is_integer() and abs(value) <= _MAX_SAFE_INTEGER:
        return int(value)
    return value


def _render_number(value) -> str:
    """Write a number the way JSON.stringify does"""
    if isinstance(value, int) and abs(value) <= _MAX_SAFE_INTEGER:
        return str(value)
    value = float(value)
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"
    if value < 0:
        return "-" + _render_number(-value)

    # Shortest round-tripping digits, positioned by the ECMAScript rules
    _, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exponent + k
    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return f"{digits[:n]}.{digits[n:]}"
    if -6 < n <= 0:
        return "0." + "0" * -n + digits

    e = n - 1
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _render_string(text: str) -> str:
    rendered = json.dumps(text, ensure_ascii=False)
    return _LONE_SURROGATE.sub(lambda m: f"\\u{ord(m.group()):04x}", rendered)


def _is_array_index(key: str) -> bool:
    return (
        key.isascii()
        and key.isdigit()
        and (key == "0" or not key.startswith("0"))
        and int(key) < _MAX_ARRAY_INDEX
    )


def _property_order(obj: Dict[str, Any]) -> List[str]:
    """Integer-like keys first in numeric order, then insertion order, as JS objects enumerate"""
    index_keys = sorted((key for key in obj if _is_array_index(key)), key=int)
    return index_keys + [key for key in obj if not _is_array_index(key)]


def _render(value: Any, indent: str) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        return _render_number(value)
    if isinstance(value, str):
        return _render_string(value)

    inner = indent + "  "
    if isinstance(value, list):
        if not value:
            return "[]"
        items = [inner + _render(item, inner) for item in value]
    elif isinstance(value, dict):
        if not value:
            return "{}"
        items = [
            f"{inner}{_render_string(key)}: {_render(value[key], inner)}"
            for key in _property_order(value)
        ]
    else:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    opening, closing = ("[", "]") if isinstance(value, list) else ("{", "}")
    return opening + "\n" + ",\n".join(items) + "\n" + indent + closing


def clean_body(raw: str) -> str:
    """Drop one leading byte-order mark and surrounding whitespace"""
    if raw.startswith(BYTE_ORDER_MARK):
        raw = raw[len(BYTE_ORDER_MARK):]
    return _SURROUNDING_WHITESPACE.sub("", raw)


def parse_pack_body(raw: str) -> Any:
    """Parse a request body, raising InvalidPackJSON with the parser's message"""
    try:
        return json.loads(
            clean_body(raw),
            parse_float=_parse_number,
            parse_int=_parse_number,
            parse_constant=_reject_constant,
        )
    except ValueError as e:
        raise InvalidPackJSON(str(e)) from e


def extract_pack_id(document: Any) -> str:
    """Return pack_metadata.pack_id, which must be a non-empty string"""
    metadata = document.get("pack_metadata") if isinstance(document, dict) else None
    pack_id = metadata.get("pack_id") if isinstance(metadata, dict) else None
    if not pack_id or not isinstance(pack_id, str):
        raise MissingPackId()
    return pack_id


def pack_key(pack_id: str) -> str:
    return f"{PACK_PREFIX}{pack_id}{PACK_SUFFIX}"


def pack_lookup_key(pack_id: str) -> str:
    """Key for a GET by id; ids already ending in .json are used as given"""
    if pack_id.endswith(PACK_SUFFIX):
        return f"{PACK_PREFIX}{pack_id}"
    return pack_key(pack_id)


def render_pack(document: Any) -> str:
    """Pretty-print a pack as JSON.stringify(document, null, 2) would"""
    return _render(document, "")


def load_pack(raw: str) -> Tuple[str, Dict[str, Any]]:
    """Parse and validate a request body, returning (pack_id, document)"""
    document = parse_pack_body(raw)
    return extract_pack_id(document), document
