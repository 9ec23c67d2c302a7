"""
Answerbank greeter - the demo stateful-object capability

Unrelated to storage; it answers unmatched routes with a greeting fetched
from a Durable Object.
"""

from abc import ABC, abstractmethod

DEFAULT_OBJECT_NAME = "foo"


def greeting(name: str) -> str:
    return f"Hello, {name}!"


class Greeter(ABC):
    """Anything that can greet someone by name"""

    @abstractmethod
    async def greet(self, name: str) -> str:
        ...


class LocalGreeter(Greeter):
    """Greets in-process, without a Durable Object"""

    async def greet(self, name: str) -> str:
        return greeting(name)


class DurableObjectGreeter(Greeter):
    """Greets through the sayHello method of a named Durable Object"""

    def __init__(self, namespace, object_name: str = DEFAULT_OBJECT_NAME):
        self.namespace = namespace
        self.object_name = object_name

    async def greet(self, name: str) -> str:
        stub = self.namespace.getByName(self.object_name)
        return str(await stub.sayHello(name))
