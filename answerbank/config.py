"""
Answerbank configuration

Settings are read once per isolate from the Worker env (wrangler.toml
[vars] and bindings) and held for the lifetime of the app.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .greeter import DEFAULT_OBJECT_NAME

LOGGER_NAME = "answerbank"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


def env_value(env: Any, name: str, default: Any = None) -> Any:
    if env is None:
        return default
    if isinstance(env, dict):
        value = env.get(name, default)
    else:
        value = getattr(env, name, default)
    return default if value is None else value


def _env_flag(env: Any, name: str, default: bool = False) -> bool:
    value = env_value(env, name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


@dataclass
class Settings:
    """Binding names and switches for one deployment"""

    bucket_binding: str = "ANSWERBANK_EVIDENCE"
    greeter_binding: str = "MY_DURABLE_OBJECT"
    greeter_object: str = DEFAULT_OBJECT_NAME
    greeting_subject: str = "world"

    # When set, unmatched routes get 404 instead of the greeting
    strict_routes: bool = False

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Any) -> "Settings":
        defaults = cls()
        return cls(
            bucket_binding=str(
                env_value(env, "ANSWERBANK_BUCKET_BINDING", defaults.bucket_binding)
            ),
            greeter_binding=str(
                env_value(env, "ANSWERBANK_GREETER_BINDING", defaults.greeter_binding)
            ),
            strict_routes=_env_flag(env, "ANSWERBANK_STRICT_ROUTES", defaults.strict_routes),
            log_level=str(env_value(env, "LOG_LEVEL", defaults.log_level)).upper(),
        )


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the answerbank logger"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
