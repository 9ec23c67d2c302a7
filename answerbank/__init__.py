"""
Answerbank - HTTP gateway over the evidence R2 bucket for Python Workers
"""

from .app import Services, create_app
from .config import Settings, configure_logging
from .core import Gateway, Middleware, Request, Response, Route, Router, text_response
from .exceptions import BadRequest, HTTPError, MethodNotAllowed, NotFound
from .greeter import DurableObjectGreeter, Greeter, LocalGreeter, greeting
from .middleware import LoggingMiddleware

__version__ = "0.1.0"

__all__ = [
    "BadRequest",
    "DurableObjectGreeter",
    "Gateway",
    "Greeter",
    "HTTPError",
    "LocalGreeter",
    "LoggingMiddleware",
    "MethodNotAllowed",
    "Middleware",
    "NotFound",
    "Request",
    "Response",
    "Route",
    "Router",
    "Services",
    "Settings",
    "configure_logging",
    "create_app",
    "greeting",
    "text_response",
]
