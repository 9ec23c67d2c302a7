"""
Answerbank application factory

Builds the gateway once per isolate. The bucket and greeter are injected
here or, when omitted, resolved from the Worker env bindings named in
Settings.
"""
import logging

from .config import Settings, configure_logging, env_value
from .core import Gateway, Request, text_response
from .greeter import DurableObjectGreeter, Greeter
from .middleware import LoggingMiddleware
from .routes import build_router

logger = logging.getLogger(__name__)


class Services:
    """Process-lifetime dependencies shared by every handler"""

    def __init__(self, settings: Settings, bucket=None, greeter: Greeter = None):
        self.settings = settings
        self._bucket = bucket
        self._greeter = greeter

    def _binding(self, request: Request, name: str):
        binding = env_value(request.env, name)
        if binding is None:
            raise RuntimeError(f"Worker env has no binding named {name}")
        return binding

    def bucket(self, request: Request):
        if self._bucket is not None:
            return self._bucket
        return self._binding(request, self.settings.bucket_binding)

    def greeter(self, request: Request) -> Greeter:
        if self._greeter is not None:
            return self._greeter
        namespace = self._binding(request, self.settings.greeter_binding)
        return DurableObjectGreeter(namespace, self.settings.greeter_object)


def create_app(settings: Settings = None, bucket=None, greeter: Greeter = None) -> Gateway:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    services = Services(settings, bucket=bucket, greeter=greeter)
    app = Gateway(router=build_router(services))
    app.add_middleware(LoggingMiddleware())

    if not settings.strict_routes:
        @app.fallback
        async def greet(request: Request):
            message = await services.greeter(request).greet(settings.greeting_subject)
            return text_response(message)

    logger.debug(
        "App ready: bucket=%s greeter=%s strict_routes=%s",
        settings.bucket_binding,
        settings.greeter_binding,
        settings.strict_routes,
    )
    return app
