"""
Tests for answerbank.storage
R2 helpers against the in-memory bucket and plain Python stand-ins
"""

from datetime import UTC, datetime

import pytest

from answerbank.storage import (
    _safe_js_object_access,
    arraybuffer_to_bytes,
    bytes_to_arraybuffer,
    http_metadata_from_headers,
    iso_timestamp,
    r2_get,
    r2_http_etag,
    r2_http_headers,
    r2_list,
    r2_object_summary,
    r2_put,
    r2_put_many,
)
from answerbank.testing import MockR2Bucket, R2HTTPMetadata


class TestConversions:
    """Test value conversion outside Pyodide"""

    def test_bytes_arraybuffer_non_js(self):
        data = b"test data"

        assert bytes_to_arraybuffer(data) == data
        assert arraybuffer_to_bytes(bytes_to_arraybuffer(data)) == data

    def test_arraybuffer_to_bytes_variants(self):
        assert arraybuffer_to_bytes(None) == b""
        assert arraybuffer_to_bytes(bytearray(b"ab")) == b"ab"
        assert arraybuffer_to_bytes(memoryview(b"cd")) == b"cd"

    def test_arraybuffer_to_bytes_uses_to_bytes(self):
        proxy = type("JsBuffer", (), {"to_bytes": lambda self: b"js"})()

        assert arraybuffer_to_bytes(proxy) == b"js"

    def test_safe_js_object_access(self):
        proxy = type("JsProxy", (), {"to_py": lambda self: {"a": 1}})()

        assert _safe_js_object_access(None) is None
        assert _safe_js_object_access(None, "fallback") == "fallback"
        assert _safe_js_object_access(proxy) == {"a": 1}
        assert _safe_js_object_access("plain") == "plain"


class TestIsoTimestamp:
    def test_utc_with_milliseconds(self):
        value = datetime(2024, 1, 2, 3, 4, 5, 678900, tzinfo=UTC)

        assert iso_timestamp(value) == "2024-01-02T03:04:05.678Z"

    def test_naive_is_treated_as_utc(self):
        assert iso_timestamp(datetime(2024, 1, 2)) == "2024-01-02T00:00:00.000Z"

    def test_js_date(self):
        js_date = type("Date", (), {"toISOString": lambda self: "2024-01-02T00:00:00.000Z"})()

        assert iso_timestamp(js_date) == "2024-01-02T00:00:00.000Z"

    def test_none(self):
        assert iso_timestamp(None) is None


class TestHttpMetadata:
    def test_from_full_header_set(self):
        metadata = http_metadata_from_headers(
            {
                "Content-Type": "text/plain",
                "content-language": "fr",
                "Content-Disposition": "inline",
                "Content-Encoding": "gzip",
                "cache-control": "no-cache",
                "expires": "Wed, 21 Oct 2015 07:28:00 GMT",
                "user-agent": "curl/8.0",
                "content-length": "5",
            }
        )

        assert metadata == {
            "contentType": "text/plain",
            "contentLanguage": "fr",
            "contentDisposition": "inline",
            "contentEncoding": "gzip",
            "cacheControl": "no-cache",
            "cacheExpiry": datetime(2015, 10, 21, 7, 28, tzinfo=UTC),
        }

    def test_unparseable_expires_is_dropped(self):
        assert http_metadata_from_headers({"expires": "tomorrow-ish"}) == {}

    def test_headers_from_metadata(self):
        obj = type("Obj", (), {})()
        obj.httpMetadata = R2HTTPMetadata(
            contentType="application/json",
            cacheControl="max-age=60",
            cacheExpiry=datetime(2015, 10, 21, 7, 28, tzinfo=UTC),
        )

        assert r2_http_headers(obj) == {
            "Content-Type": "application/json",
            "Cache-Control": "max-age=60",
            "Expires": "Wed, 21 Oct 2015 07:28:00 GMT",
        }

    def test_headers_from_dict_metadata(self):
        assert r2_http_headers({"httpMetadata": {"contentLanguage": "en"}}) == {
            "Content-Language": "en"
        }

    def test_headers_without_metadata(self):
        assert r2_http_headers(type("Obj", (), {})()) == {}

    def test_etag_prefers_http_etag(self):
        assert r2_http_etag({"httpEtag": '"abc"', "etag": "xyz"}) == '"abc"'
        assert r2_http_etag({"etag": "xyz"}) == '"xyz"'

    def test_summary_fields(self):
        obj = {
            "key": "packs/p.json",
            "size": 12,
            "etag": "abc",
            "uploaded": datetime(2024, 5, 6, tzinfo=UTC),
            "httpMetadata": {"contentType": "text/plain"},
        }

        assert r2_object_summary(obj) == {
            "key": "packs/p.json",
            "size": 12,
            "etag": "abc",
            "uploaded": "2024-05-06T00:00:00.000Z",
        }


class TestBucketHelpers:
    """Test put/get/list helpers against MockR2Bucket"""

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        bucket = MockR2Bucket()

        await r2_put(bucket, "a/b.txt", b"hello", {"contentType": "text/plain"})
        obj = await r2_get(bucket, "a/b.txt")

        assert await obj.arrayBuffer() == b"hello"
        assert obj.httpMetadata.contentType == "text/plain"
        assert obj.httpEtag == f'"{obj.etag}"'

    @pytest.mark.asyncio
    async def test_put_string(self):
        bucket = MockR2Bucket()

        await r2_put(bucket, "k", "keep")

        assert (await bucket.get("k")).size == 4

    @pytest.mark.asyncio
    async def test_get_missing(self):
        assert await r2_get(MockR2Bucket(), "missing") is None

    @pytest.mark.asyncio
    async def test_get_keeps_falsy_objects(self):
        # JS proxies of zero-byte objects are falsy
        empty = type("EmptyObject", (), {"__len__": lambda self: 0, "size": 0})()

        async def get(key):
            return empty

        bucket = type("Bucket", (), {})()
        bucket.get = get

        assert not empty
        assert await r2_get(bucket, "empty") is empty

    @pytest.mark.asyncio
    async def test_zero_byte_object_is_found(self):
        bucket = MockR2Bucket()
        await bucket.put("blank", b"")

        obj = await r2_get(bucket, "blank")

        assert obj is not None
        assert obj.size == 0

    @pytest.mark.asyncio
    async def test_put_overwrites(self):
        bucket = MockR2Bucket()

        await r2_put(bucket, "k", "one")
        await r2_put(bucket, "k", "two")

        assert bucket.object_count() == 1
        assert await (await r2_get(bucket, "k")).arrayBuffer() == b"two"

    @pytest.mark.asyncio
    async def test_put_many(self):
        bucket = MockR2Bucket()

        created = await r2_put_many(bucket, ["x/.keep", "y/.keep"], "keep")

        assert created == ["x/.keep", "y/.keep"]
        assert sorted(bucket.get_all_keys()) == ["x/.keep", "y/.keep"]

    @pytest.mark.asyncio
    async def test_put_many_fails_as_a_whole(self):
        bucket = MockR2Bucket()
        bucket.fail_puts = True

        with pytest.raises(RuntimeError, match="R2 put failed"):
            await r2_put_many(bucket, ["x/.keep", "y/.keep"], "keep")

    @pytest.mark.asyncio
    async def test_list_prefix_and_limit(self):
        bucket = MockR2Bucket()
        for key in ["packs/b.json", "packs/a.json", "evidence/c.txt", "packs/c.json"]:
            await r2_put(bucket, key, "{}")

        listed = await r2_list(bucket, "packs/", 2)

        assert [obj["key"] for obj in listed] == ["packs/a.json", "packs/b.json"]
        assert all(obj["size"] == 2 for obj in listed)

    @pytest.mark.asyncio
    async def test_list_empty(self):
        assert await r2_list(MockR2Bucket(), "packs/", 100) == []
