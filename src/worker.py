"""
Answerbank evidence gateway - Cloudflare Workers entry point
"""

from workers import DurableObject

from answerbank import Settings, create_app, greeting

_app = None


class MyDurableObject(DurableObject):
    """Demo Durable Object answering sayHello over RPC"""

    def __init__(self, ctx, env):
        super().__init__(ctx, env)

    async def sayHello(self, name):
        return greeting(name)


def get_app(env):
    """Build the app once per isolate from the first request's env"""
    global _app
    if _app is None:
        _app = create_app(Settings.from_env(env))
    return _app


# Cloudflare Workers entry point
async def on_fetch(request, env):
    return await get_app(env)(request, env)
