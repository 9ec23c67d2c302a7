"""
Answerbank core - request/response wrappers, routing and the app object

Adapted to Python Workers: the app is called with the raw Workers request
and env, and returns a Workers Response (or the internal Response in test mode).
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from .exceptions import HTTPError
from .storage import arraybuffer_to_bytes

logger = logging.getLogger(__name__)

# Method wildcard: the route answers whatever verb the client sends
ANY_METHOD = "*"


def _read_headers(raw_headers) -> Dict[str, str]:
    """Lower-cased header dict from a Workers Headers object or a mapping"""
    if raw_headers is None:
        return {}
    if hasattr(raw_headers, "items"):
        pairs = raw_headers.items()
    else:
        # JS Headers iterate as [name, value] pairs
        pairs = raw_headers
    return {str(name).lower(): str(value) for name, value in pairs}


class Request:
    """Wrapper around Workers request with convenient methods"""

    def __init__(self, raw_request, env):
        self.raw_request = raw_request
        self.env = env

        self.url = str(raw_request.url)
        parsed_url = urlparse(self.url)

        self.method = str(raw_request.method).upper()
        self.path = parsed_url.path

        self._headers = _read_headers(getattr(raw_request, "headers", None))

        # Path parameters (set by router), still percent-encoded
        self.path_params: Dict[str, str] = {}

        self._text_cache: Optional[str] = None
        self._bytes_cache: Optional[bytes] = None

    def path_param(self, key: str, default: Any = None) -> Any:
        """Get path parameter value, URL-decoded"""
        value = self.path_params.get(key)
        if value is None:
            return default
        return unquote(value)

    def header(self, key: str, default: Any = None) -> Optional[str]:
        """Get header value (case-insensitive)"""
        return self._headers.get(key.lower(), default)

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    async def body(self) -> str:
        """Get request body as string"""
        if self._text_cache is None:
            if self._bytes_cache is not None:
                self._text_cache = self._bytes_cache.decode("utf-8", errors="replace")
            elif hasattr(self.raw_request, "text"):
                self._text_cache = str(await self.raw_request.text())
            else:
                self._text_cache = ""
        return self._text_cache

    async def body_bytes(self) -> bytes:
        """Get request body as raw bytes"""
        if self._bytes_cache is None:
            if self._text_cache is not None:
                self._bytes_cache = self._text_cache.encode("utf-8")
            elif hasattr(self.raw_request, "arrayBuffer"):
                self._bytes_cache = arraybuffer_to_bytes(await self.raw_request.arrayBuffer())
            else:
                self._bytes_cache = (await self.body()).encode("utf-8")
        return self._bytes_cache


class Response:
    """Response wrapper for Workers with convenient methods"""

    def __init__(
        self,
        content: Any = None,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ):
        self.content = content
        self.status = status
        self.headers = dict(headers or {})

        # Auto-detect content type
        if content_type:
            self.headers["Content-Type"] = content_type
        elif not any(name.lower() == "content-type" for name in self.headers):
            if isinstance(content, (dict, list)):
                self.headers["Content-Type"] = "application/json"
            elif isinstance(content, str):
                self.headers["Content-Type"] = "text/plain; charset=utf-8"

    def header(self, key: str, value: str) -> "Response":
        """Set a header (chainable)"""
        self.headers[key] = value
        return self

    def to_workers_response(self):
        """Convert to Workers Response object"""
        from workers import Response as WorkersResponse

        if isinstance(self.content, (dict, list)):
            return WorkersResponse.json(self.content, status=self.status, headers=self.headers)

        if self.content is None:
            body = ""
        elif isinstance(self.content, (str, bytes)) or hasattr(self.content, "getReader"):
            # Strings, raw bytes and R2 body streams go through untouched
            body = self.content
        else:
            body = str(self.content)

        return WorkersResponse(body, status=self.status, headers=self.headers)


def text_response(message: str, status: int = 200) -> Response:
    """Plain-text response, the shape every error in this app takes"""
    return Response(message, status=status)


class Route:
    """Represents a single route"""

    def __init__(self, path: str, handler: Callable, methods: List[str]):
        self.path = path
        self.handler = handler
        self.methods = [m.upper() for m in methods]

        self.regex, self.param_names = self._compile_path(path)

    def _compile_path(self, path: str) -> Tuple[re.Pattern, List[str]]:
        """Convert path pattern to regex with parameter names"""
        param_names = []
        regex_pattern = path

        # Path parameters like {id} or {key:path}
        param_pattern = re.compile(r"\{([^}]+)\}")

        for match in param_pattern.finditer(path):
            param_name = match.group(1)
            param_type = "str"
            if ":" in param_name:
                param_name, param_type = param_name.split(":", 1)
            param_names.append(param_name)

            if param_type == "path":
                # Slashes allowed, and may be empty
                replacement = r"(.*)"
            else:
                replacement = r"([^/]+)"

            regex_pattern = regex_pattern.replace(match.group(0), replacement)

        return re.compile(f"^{regex_pattern}$"), param_names

    def matches(self, method: str, path: str) -> Tuple[bool, Dict[str, str]]:
        """Check if route matches method and path, return path params if match"""
        if ANY_METHOD not in self.methods and method.upper() not in self.methods:
            return False, {}

        match = self.regex.match(path)
        if not match:
            return False, {}

        path_params = {}
        for i, param_name in enumerate(self.param_names):
            path_params[param_name] = match.group(i + 1)

        return True, path_params


class Router:
    """URL router with support for path parameters"""

    def __init__(self):
        self.routes: List[Route] = []

    def route(self, path: str, methods: List[str] = None):
        """Decorator for adding routes"""
        if methods is None:
            methods = ["GET"]

        def decorator(handler):
            self.routes.append(Route(path, handler, methods))
            return handler

        return decorator

    def get(self, path: str):
        return self.route(path, ["GET"])

    def post(self, path: str):
        return self.route(path, ["POST"])

    def any(self, path: str):
        """Decorator for routes answering every method"""
        return self.route(path, [ANY_METHOD])

    def resolve(self, method: str, path: str) -> Tuple[Optional[Callable], Dict[str, str]]:
        """Resolve a method and path to a handler and path parameters"""
        for route in self.routes:
            matches, path_params = route.matches(method, path)
            if matches:
                return route.handler, path_params

        return None, {}


class Middleware(ABC):
    """Base middleware class"""

    @abstractmethod
    async def process_request(self, request: Request) -> Request:
        """Process incoming request (before routing)"""
        return request

    @abstractmethod
    async def process_response(self, request: Request, response: Response) -> Response:
        """Process outgoing response (after handler)"""
        return response


async def _not_found(request: Request) -> Response:
    return text_response("Not found", status=404)


class Gateway:
    """Routing app for Python Workers"""

    def __init__(self, router: Optional[Router] = None):
        self.router = router or Router()
        self.middleware_stack: List[Middleware] = []
        self.error_handlers: Dict[int, Callable] = {}
        self.fallback_handler: Optional[Callable] = None
        self.test_mode = False

    def route(self, path: str, methods: List[str] = None):
        """Decorator for adding routes"""
        if methods is None:
            methods = ["GET"]
        return self.router.route(path, methods)

    def get(self, path: str):
        return self.route(path, ["GET"])

    def post(self, path: str):
        return self.route(path, ["POST"])

    def add_middleware(self, middleware: Middleware):
        self.middleware_stack.append(middleware)

    def exception_handler(self, status_code: int):
        """Decorator for custom error handlers"""
        def decorator(handler):
            self.error_handlers[status_code] = handler
            return handler
        return decorator

    def fallback(self, handler):
        """Decorator for the handler that answers unmatched requests"""
        self.fallback_handler = handler
        return handler

    @staticmethod
    def _coerce(result: Any) -> Response:
        if isinstance(result, Response):
            return result
        if result is None:
            return Response("")
        return Response(result)

    async def _handle_http_error(self, request: Request, error: HTTPError) -> Response:
        handler = self.error_handlers.get(error.status_code)
        if handler is not None:
            return self._coerce(await handler(request, error))
        return text_response(error.message, status=error.status_code)

    async def __call__(self, request, env):
        """Entry point for Workers: on_fetch(request, env) delegates here"""
        app_request = Request(request, env)

        try:
            for middleware in self.middleware_stack:
                app_request = await middleware.process_request(app_request)

            handler, path_params = self.router.resolve(app_request.method, app_request.path)
            if handler is None:
                handler = self.fallback_handler or _not_found

            app_request.path_params = path_params
            response = self._coerce(await handler(app_request))
        except HTTPError as e:
            response = await self._handle_http_error(app_request, e)
        except Exception:
            logger.exception("Unhandled error for %s %s", app_request.method, app_request.path)
            raise

        for middleware in reversed(self.middleware_stack):
            response = await middleware.process_response(app_request, response)

        if self.test_mode:
            return response
        return response.to_workers_response()
