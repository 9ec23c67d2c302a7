"""
Tests for answerbank.config and answerbank.greeter
"""

import logging

import pytest

from answerbank import DurableObjectGreeter, LocalGreeter, Settings, configure_logging, greeting
from answerbank.config import LOGGER_NAME, env_value
from answerbank.testing import MockDurableObjectNamespace, MockEnv


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.bucket_binding == "ANSWERBANK_EVIDENCE"
        assert settings.greeter_binding == "MY_DURABLE_OBJECT"
        assert settings.greeter_object == "foo"
        assert settings.greeting_subject == "world"
        assert settings.strict_routes is False
        assert settings.log_level == "INFO"

    def test_from_empty_env(self):
        assert Settings.from_env(None) == Settings()
        assert Settings.from_env(MockEnv({})) == Settings()

    def test_from_env_vars(self):
        env = MockEnv(
            {
                "ANSWERBANK_BUCKET_BINDING": "EVIDENCE",
                "ANSWERBANK_GREETER_BINDING": "GREETER",
                "ANSWERBANK_STRICT_ROUTES": "true",
                "LOG_LEVEL": "debug",
            }
        )

        settings = Settings.from_env(env)

        assert settings.bucket_binding == "EVIDENCE"
        assert settings.greeter_binding == "GREETER"
        assert settings.strict_routes is True
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "value, expected",
        [("1", True), ("yes", True), (" On ", True), ("false", False), ("0", False), (True, True)],
    )
    def test_strict_routes_flag(self, value, expected):
        settings = Settings.from_env({"ANSWERBANK_STRICT_ROUTES": value})

        assert settings.strict_routes is expected

    def test_env_value_reads_dicts_and_objects(self):
        assert env_value({"A": "1"}, "A") == "1"
        assert env_value(MockEnv({"A": "2"}), "A") == "2"
        assert env_value({}, "A", "default") == "default"


class TestConfigureLogging:
    def test_single_handler(self):
        configure_logging("INFO")
        logger = configure_logging("DEBUG")

        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert configure_logging("chatty").level == logging.INFO


class TestGreeter:
    def test_greeting(self):
        assert greeting("world") == "Hello, world!"

    @pytest.mark.asyncio
    async def test_local_greeter(self):
        assert await LocalGreeter().greet("Ada") == "Hello, Ada!"

    @pytest.mark.asyncio
    async def test_durable_object_greeter_uses_named_object(self):
        namespace = MockDurableObjectNamespace()
        greeter = DurableObjectGreeter(namespace)

        assert await greeter.greet("world") == "Hello, world!"
        assert await greeter.greet("again") == "Hello, again!"
        assert namespace.names() == ["foo"]
        assert namespace.getByName("foo").calls == ["world", "again"]

    @pytest.mark.asyncio
    async def test_durable_object_greeter_custom_name(self):
        namespace = MockDurableObjectNamespace()

        await DurableObjectGreeter(namespace, "bar").greet("world")

        assert namespace.names() == ["bar"]
