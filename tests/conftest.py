"""
Pytest configuration and fixtures for Answerbank tests

Every app fixture runs against in-memory R2 and Durable Object mocks bound
under the same names the deployed Worker uses.
"""

import pytest

from answerbank import Settings, create_app
from answerbank.testing import MockDurableObjectNamespace, MockR2Bucket, TestClient


@pytest.fixture
def bucket():
    """A clean in-memory R2 bucket"""
    return MockR2Bucket()


@pytest.fixture
def namespace():
    """A Durable Object namespace handing out greeting objects"""
    return MockDurableObjectNamespace()


@pytest.fixture
def env(bucket, namespace):
    settings = Settings()
    return {
        settings.bucket_binding: bucket,
        settings.greeter_binding: namespace,
    }


@pytest.fixture
def client(env):
    """TestClient over the default app, bindings resolved from env"""
    return TestClient(create_app(Settings()), env=env)


@pytest.fixture
def strict_client(env):
    """TestClient over an app that answers unmatched routes with 404"""
    return TestClient(create_app(Settings(strict_routes=True)), env=env)
