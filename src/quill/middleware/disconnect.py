"""Cancel in-flight requests when the client goes away.

Learn: Starlette keeps running a handler after the client disconnects,
including whatever query it is awaiting. This pure ASGI middleware runs
the app in its own task and watches the receive channel; on
http.disconnect before the response finished, it cancels that task.
The CancelledError lands in the awaited database call, and the request's
session context rolls back on the way out.

Messages read by the watcher are forwarded to the app through a queue,
so the app still sees the full request body.
"""

import asyncio

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger()


class CancelOnDisconnectMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        inbox: asyncio.Queue[Message] = asyncio.Queue()
        response_done = asyncio.Event()
        disconnected = asyncio.Event()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                response_done.set()
            await send(message)

        handler = asyncio.create_task(self.app(scope, inbox.get, send_wrapper))

        async def watch() -> None:
            while True:
                message = await receive()
                await inbox.put(message)
                if message["type"] == "http.disconnect":
                    if not response_done.is_set() and not handler.done():
                        disconnected.set()
                        handler.cancel()
                    return

        watcher = asyncio.create_task(watch())
        try:
            await handler
        except asyncio.CancelledError:
            if not disconnected.is_set():
                raise
            logger.info("http.client_disconnected", path=scope.get("path"))
        finally:
            watcher.cancel()
