"""
Answerbank R2 helpers

Thin wrappers over a Workers R2 bucket binding. They accept both real
bindings (JS proxies under Pyodide) and the in-memory mocks from
answerbank.testing, so handlers never touch JS conversion directly.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Request header -> R2 httpMetadata field, as R2 reads them from a Headers object
HEADER_TO_HTTP_METADATA = {
    "content-type": "contentType",
    "content-language": "contentLanguage",
    "content-disposition": "contentDisposition",
    "content-encoding": "contentEncoding",
    "cache-control": "cacheControl",
}

# R2 httpMetadata field -> response header, as R2Object.writeHttpMetadata emits them
HTTP_METADATA_TO_HEADER = {
    "contentType": "Content-Type",
    "contentLanguage": "Content-Language",
    "contentDisposition": "Content-Disposition",
    "contentEncoding": "Content-Encoding",
    "cacheControl": "Cache-Control",
}


def _safe_js_object_access(obj: Any, default: Any = None) -> Any:
    """Convert a JS proxy to its Python value, passing plain values through"""
    if obj is None:
        return default
    if hasattr(obj, "to_py"):
        return obj.to_py()
    return obj


def _get_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a dict, a Python object or a JS proxy"""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    if value is None:
        return default
    return value


def bytes_to_arraybuffer(data: bytes) -> Any:
    """Copy bytes into a JS ArrayBuffer; outside Pyodide the bytes are returned as-is"""
    try:
        import js
    except ImportError:
        return data

    buffer = js.ArrayBuffer.new(len(data))
    js.Uint8Array.new(buffer).set(bytearray(data))
    return buffer


def arraybuffer_to_bytes(buffer: Any) -> bytes:
    """Inverse of bytes_to_arraybuffer"""
    if buffer is None:
        return b""
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return bytes(buffer)
    if hasattr(buffer, "to_bytes"):
        return buffer.to_bytes()
    return bytes(_safe_js_object_access(buffer))


def _to_js_options(options: Dict[str, Any]) -> Any:
    """Convert an options dict to a JS object for binding calls under Pyodide"""
    try:
        from js import Object
        from pyodide.ffi import to_js
    except ImportError:
        return options

    return to_js(options, dict_converter=Object.fromEntries)


def _to_js_date(value: datetime) -> Any:
    """JS Date for a datetime under Pyodide; the datetime itself elsewhere"""
    try:
        import js
    except ImportError:
        return value

    return js.Date.new(value.timestamp() * 1000)


def iso_timestamp(value: Any) -> Optional[str]:
    """Render an upload timestamp the way JSON.stringify renders a JS Date"""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        rendered = value.astimezone(UTC).isoformat(timespec="milliseconds")
        return rendered.replace("+00:00", "Z")
    if hasattr(value, "toISOString"):
        return str(value.toISOString())
    return str(value)


def http_metadata_from_headers(headers: Mapping[str, str]) -> Dict[str, Any]:
    """
    Build R2 httpMetadata from a full request header set

    Only the headers R2 keeps are carried over; everything else in the set
    is ignored, matching what R2 does when handed a Headers object.
    """
    metadata: Dict[str, Any] = {}
    for name, value in headers.items():
        lowered = name.lower()
        if lowered in HEADER_TO_HTTP_METADATA:
            metadata[HEADER_TO_HTTP_METADATA[lowered]] = value
        elif lowered == "expires":
            try:
                metadata["cacheExpiry"] = parsedate_to_datetime(value)
            except (TypeError, ValueError):
                logger.debug("Ignoring unparseable Expires header: %r", value)
    return metadata


def r2_http_headers(obj: Any) -> Dict[str, str]:
    """Response headers for a stored object's HTTP metadata"""
    headers: Dict[str, str] = {}
    metadata = _get_field(obj, "httpMetadata")
    if metadata is None:
        return headers

    for field, header in HTTP_METADATA_TO_HEADER.items():
        value = _get_field(metadata, field)
        if value:
            headers[header] = str(value)

    expiry = _get_field(metadata, "cacheExpiry")
    if isinstance(expiry, datetime):
        headers["Expires"] = format_datetime(expiry.astimezone(UTC), usegmt=True)
    elif expiry is not None and hasattr(expiry, "toUTCString"):
        headers["Expires"] = str(expiry.toUTCString())
    return headers


def r2_http_etag(obj: Any) -> str:
    """Quoted ETag suitable for an HTTP etag header"""
    http_etag = _get_field(obj, "httpEtag")
    if http_etag:
        return str(http_etag)
    return f'"{_get_field(obj, "etag", "")}"'


def r2_object_summary(obj: Any) -> Dict[str, Any]:
    """Listing entry for one stored object"""
    return {
        "key": _get_field(obj, "key"),
        "size": _get_field(obj, "size"),
        "etag": _get_field(obj, "etag"),
        "uploaded": iso_timestamp(_get_field(obj, "uploaded")),
    }


async def r2_put(
    bucket,
    key: str,
    value: Any,
    http_metadata: Optional[Dict[str, Any]] = None,
):
    """Store a value under key; bytes are handed to R2 as an ArrayBuffer"""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes_to_arraybuffer(bytes(value))

    if http_metadata:
        if isinstance(http_metadata.get("cacheExpiry"), datetime):
            expiry = _to_js_date(http_metadata["cacheExpiry"])
            http_metadata = dict(http_metadata, cacheExpiry=expiry)
        result = await bucket.put(key, value, _to_js_options({"httpMetadata": http_metadata}))
    else:
        result = await bucket.put(key, value)

    logger.debug("Stored %s", key)
    return result


async def r2_put_many(bucket, keys: Iterable[str], value: Any) -> List[str]:
    """Write the same value under every key concurrently; any failure fails the batch"""
    keys = list(keys)
    await asyncio.gather(*(r2_put(bucket, key, value) for key in keys))
    return keys


async def r2_get(bucket, key: str):
    """Fetch an object with its body, or None when the key is absent"""
    # A zero-byte object is falsy as a JS proxy, so only null means absent
    return await bucket.get(key)


async def r2_list(bucket, prefix: str = "", limit: int = 1000) -> List[Dict[str, Any]]:
    """List objects under a prefix as summary dicts, first page only"""
    result = await bucket.list(_to_js_options({"prefix": prefix, "limit": limit}))
    objects = _get_field(result, "objects", [])
    return [r2_object_summary(obj) for obj in objects]
