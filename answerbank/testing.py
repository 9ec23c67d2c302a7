"""
Answerbank Testing Utilities - TestClient and Mock classes

This module provides testing utilities for Answerbank apps:
- TestClient: Simple sync wrapper for testing without HTTP overhead
- MockR2Bucket: In-memory R2 storage for unit testing
- MockDurableObjectNamespace: In-memory Durable Object namespace
"""

import asyncio
import builtins
import hashlib
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .greeter import greeting


class TestClient:
    """Simple sync wrapper for testing apps without HTTP/Wrangler overhead"""

    __test__ = False  # Tell pytest this is not a test class

    def __init__(self, app, base_url="https://testserver", env=None):
        self.app = app
        self.base_url = base_url.rstrip("/")
        self.env = env or {}

        if hasattr(app, "test_mode"):
            app.test_mode = True

    def request(
        self, method: str, path: str, json_data=None, data=None, headers=None, **kwargs
    ):
        """Make a test request and return (status, headers, body)"""
        return asyncio.run(
            self._async_request(method, path, json_data, data, headers, **kwargs)
        )

    def get(self, path: str, **kwargs):
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs):
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.request("DELETE", path, **kwargs)

    def _prepare_request_data(self, json_data, data, headers, kwargs):
        """Prepare request headers and body content"""
        if "json" in kwargs and json_data is None:
            json_data = kwargs.pop("json")

        test_headers = {}
        if headers:
            test_headers.update({k.lower(): v for k, v in headers.items()})

        body_content = b""
        if json_data is not None:
            body_content = json.dumps(json_data).encode("utf-8")
            test_headers.setdefault("content-type", "application/json")
        elif isinstance(data, bytes):
            body_content = data
        elif data is not None:
            body_content = str(data).encode("utf-8")

        return test_headers, body_content

    async def _serialize_response_content(self, content):
        """Serialize response content for test consumption"""
        if isinstance(content, dict | list):
            return json.dumps(content)
        if isinstance(content, bytes):
            return content.decode("utf-8", errors="replace")
        if isinstance(content, MockReadableStream):
            data = await content.read()
            return data.decode("utf-8", errors="replace")
        return str(content) if content is not None else ""

    async def _async_request(
        self, method: str, path: str, json_data=None, data=None, headers=None, **kwargs
    ):
        """Internal async request handler"""
        test_headers, body_content = self._prepare_request_data(
            json_data, data, headers, kwargs
        )
        url = f"{self.base_url}{path}"

        mock_request = MockRequest(method, url, test_headers, body_content)
        mock_env = MockEnv(self.env)

        try:
            response = await self.app(mock_request, mock_env)
        except Exception as e:
            # What the Workers runtime does with an exception that escapes on_fetch
            return 500, {}, json.dumps({"error": str(e)})

        body = await self._serialize_response_content(response.content)
        return response.status, response.headers, body


class MockRequest:
    """Mock request object for testing that matches Workers request interface"""

    def __init__(self, method: str, url: str, headers: dict, body: bytes | str = b""):
        self.method = method
        self.url = url
        self.headers = MockHeaders(headers)
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    async def text(self):
        # TextDecoder drops one leading BOM and replaces invalid UTF-8, as Request.text() does
        return self._body.decode("utf-8-sig", errors="replace")

    async def arrayBuffer(self):
        return self._body


class MockHeaders:
    """Mock headers object that matches Workers headers interface"""

    def __init__(self, headers_dict):
        self._headers = {k.lower(): v for k, v in (headers_dict or {}).items()}

    def items(self):
        return self._headers.items()

    def __iter__(self):
        return iter(self._headers.items())


class MockEnv:
    """Mock environment object for testing"""

    def __init__(self, env_dict):
        self.ENVIRONMENT = env_dict.get("ENVIRONMENT", "test")

        for key, value in env_dict.items():
            setattr(self, key, value)


# =============================================================================
# R2 Mock Implementation
# =============================================================================


@dataclass
class R2HTTPMetadata:
    """HTTP metadata for R2 objects"""

    contentType: str | None = None
    contentLanguage: str | None = None
    contentDisposition: str | None = None
    contentEncoding: str | None = None
    cacheControl: str | None = None
    cacheExpiry: datetime | None = None


class MockR2Object:
    """
    Mock R2Object - metadata only (returned by put() and list())

    Matches the Workers R2Object interface.
    """

    def __init__(
        self,
        key: str,
        size: int,
        etag: str,
        uploaded: datetime,
        http_metadata: R2HTTPMetadata | None = None,
    ):
        self.key = key
        self.size = size
        self.etag = etag
        self.httpEtag = f'"{etag}"'
        self.uploaded = uploaded
        self.httpMetadata = http_metadata or R2HTTPMetadata()


class MockR2ObjectBody(MockR2Object):
    """
    Mock R2ObjectBody - metadata plus body (returned by get())

    Matches the Workers R2ObjectBody interface with body as ReadableStream.
    """

    def __init__(self, data: bytes, **kwargs):
        super().__init__(**kwargs)
        self._data = data
        self.body = MockReadableStream(data)

    async def arrayBuffer(self) -> bytes:
        """Return data as ArrayBuffer (bytes in Python)"""
        return self._data


class MockReadableStream:
    """Mock ReadableStream for R2 body"""

    def __init__(self, data: bytes):
        self._data = data

    async def read(self) -> bytes:
        """Read all data from stream"""
        return self._data


@dataclass
class MockR2Objects:
    """Mock R2Objects - list() result, a single page"""

    objects: list[MockR2Object]


class MockR2Bucket:
    """
    Mock R2 Bucket for Unit Testing

    Provides an in-memory implementation of the slice of the Cloudflare
    Workers R2 API the gateway uses. All operations are async to match the
    real R2 API.

    Supported operations:
    - get(key) - Get object with body
    - put(key, value, options?) - Store object
    - list(options?) - List objects with prefix and limit

    Usage:
        from answerbank.testing import MockR2Bucket

        bucket = MockR2Bucket()
        await bucket.put("my-key", b"hello world", {"httpMetadata": {"contentType": "text/plain"}})
        obj = await bucket.get("my-key")
        content = await obj.arrayBuffer()
    """

    def __init__(self):
        self._objects: dict[str, dict[str, Any]] = {}
        self.fail_puts = False

    def _metadata_kwargs(self, key: str) -> dict[str, Any]:
        stored = self._objects[key]
        return {
            "key": key,
            "size": stored["size"],
            "etag": stored["etag"],
            "uploaded": stored["uploaded"],
            "http_metadata": stored.get("httpMetadata"),
        }

    async def get(self, key: str) -> MockR2ObjectBody | None:
        """Get object with body, or None if not found"""
        if key not in self._objects:
            return None
        return MockR2ObjectBody(self._objects[key]["data"], **self._metadata_kwargs(key))

    async def put(
        self,
        key: str,
        value: bytes | str | None,
        options: dict[str, Any] | None = None,
    ) -> MockR2Object:
        """
        Store an object

        Args:
            key: Object key
            value: Object data (bytes, string, or None)
            options: R2PutOptions (httpMetadata)

        Returns:
            MockR2Object with metadata
        """
        if self.fail_puts:
            raise RuntimeError(f"R2 put failed for {key}")

        options = options or {}

        if isinstance(value, str):
            value = value.encode("utf-8")
        elif value is None:
            value = b""

        http_metadata = None
        if "httpMetadata" in options:
            hm = options["httpMetadata"]
            http_metadata = R2HTTPMetadata(
                contentType=hm.get("contentType"),
                contentLanguage=hm.get("contentLanguage"),
                contentDisposition=hm.get("contentDisposition"),
                contentEncoding=hm.get("contentEncoding"),
                cacheControl=hm.get("cacheControl"),
                cacheExpiry=hm.get("cacheExpiry"),
            )

        self._objects[key] = {
            "data": value,
            "size": len(value),
            "etag": hashlib.md5(value).hexdigest(),
            "uploaded": datetime.now(UTC),
            "httpMetadata": http_metadata,
        }
        return MockR2Object(**self._metadata_kwargs(key))

    async def list(self, options: dict[str, Any] | None = None) -> MockR2Objects:
        """
        List objects in the bucket in key order

        Args:
            options: R2ListOptions (limit, prefix)

        Returns:
            MockR2Objects with the first page of matching objects
        """
        options = options or {}
        limit = min(options.get("limit", 1000), 1000)
        prefix = options.get("prefix", "")

        result_keys = sorted(k for k in self._objects if k.startswith(prefix))[:limit]

        # list() omits httpMetadata unless asked for via include
        objects = []
        for key in result_keys:
            kwargs = self._metadata_kwargs(key)
            kwargs["http_metadata"] = None
            objects.append(MockR2Object(**kwargs))

        return MockR2Objects(objects=objects)

    # Utility methods for testing

    def get_all_keys(self) -> builtins.list[str]:
        """Get all keys in the bucket (test utility)"""
        return list(self._objects.keys())

    def object_count(self) -> int:
        """Get number of objects in the bucket (test utility)"""
        return len(self._objects)


# =============================================================================
# Durable Object Mock Implementation
# =============================================================================


class MockGreetingObject:
    """Stand-in for the deployed greeting Durable Object"""

    def __init__(self, name: str):
        self.name = name
        self.calls: builtins.list[str] = []

    async def sayHello(self, name: str) -> str:
        self.calls.append(name)
        return greeting(name)


class MockDurableObjectNamespace:
    """
    Mock Durable Object namespace

    getByName() returns the same stub for the same name, like a real
    namespace addressing a single long-lived object.
    """

    def __init__(self, factory=MockGreetingObject):
        self._factory = factory
        self._objects: dict[str, Any] = {}

    def getByName(self, name: str):
        if name not in self._objects:
            self._objects[name] = self._factory(name)
        return self._objects[name]

    def names(self) -> builtins.list[str]:
        return list(self._objects.keys())
