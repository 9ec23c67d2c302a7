"""
Answerbank routes

Registration order is the dispatch order: /health, /init-folders, /packs,
/packs/<id>, /r2/<key>. Anything else falls through to the app's fallback.
"""
import logging

from .core import Request, Response, Router, text_response
from .exceptions import BadRequest, MethodNotAllowed, NotFound
from .packs import (
    FOLDER_PLACEHOLDERS,
    PACK_CONTENT_TYPE,
    PACK_LIST_LIMIT,
    PACK_PREFIX,
    PLACEHOLDER_VALUE,
    load_pack,
    pack_key,
    pack_lookup_key,
    render_pack,
)
from .storage import (
    http_metadata_from_headers,
    r2_get,
    r2_http_etag,
    r2_http_headers,
    r2_list,
    r2_put,
    r2_put_many,
)

logger = logging.getLogger(__name__)


async def object_response(bucket, key: str) -> Response:
    """Stream a stored object back with its HTTP metadata and etag"""
    obj = await r2_get(bucket, key)
    if obj is None:
        raise NotFound()

    headers = r2_http_headers(obj)
    headers["etag"] = r2_http_etag(obj)
    return Response(obj.body, headers=headers)


def build_router(services) -> Router:
    """Router for the evidence bucket; services supplies the bucket per request"""
    router = Router()

    @router.any("/health")
    async def health(request: Request):
        return text_response("ok")

    @router.post("/init-folders")
    async def init_folders(request: Request):
        created = await r2_put_many(
            services.bucket(request), FOLDER_PLACEHOLDERS, PLACEHOLDER_VALUE
        )
        logger.info("Created %d folder placeholders", len(created))
        return {"ok": True, "created": created}

    @router.post("/packs")
    async def create_pack(request: Request):
        pack_id, document = load_pack(await request.body())
        key = pack_key(pack_id)

        await r2_put(
            services.bucket(request),
            key,
            render_pack(document),
            {"contentType": PACK_CONTENT_TYPE},
        )
        logger.info("Stored pack %s at %s", pack_id, key)
        return {"ok": True, "key": key, "pack_id": pack_id}

    @router.get("/packs")
    async def list_packs(request: Request):
        objects = await r2_list(services.bucket(request), PACK_PREFIX, PACK_LIST_LIMIT)
        return {"ok": True, "count": len(objects), "objects": objects}

    @router.get("/packs/{pack_id:path}")
    async def get_pack(request: Request):
        pack_id = request.path_param("pack_id", "")
        if not pack_id:
            raise BadRequest("Missing pack id")

        return await object_response(services.bucket(request), pack_lookup_key(pack_id))

    @router.any("/r2/{key:path}")
    async def r2_object(request: Request):
        key = request.path_param("key", "")
        if not key:
            raise BadRequest("Missing key")

        if request.method == "PUT":
            body = await request.body_bytes()
            if not body:
                raise BadRequest("Missing body")

            await r2_put(
                services.bucket(request),
                key,
                body,
                http_metadata_from_headers(request.headers),
            )
            logger.info("Saved %s (%d bytes)", key, len(body))
            return text_response(f"Saved {key}")

        if request.method == "GET":
            return await object_response(services.bucket(request), key)

        raise MethodNotAllowed()

    return router
