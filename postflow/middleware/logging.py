# postflow/middleware/logging.py
import time
import uuid
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from starlette.requests import Request
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

logger = structlog.get_logger("http")


class RequestIdMiddleware:
    """Binds a request id to every log line of the request and echoes it back."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        start = time.time()
        req_id = request.headers.get(self.header_name.lower()) or str(uuid.uuid4())
        status_code = 500
        clear_contextvars()
        bind_contextvars(request_id=req_id, path=request.url.path, method=request.method)

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[self.header_name] = req_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.exception("http_request_exception", error=str(exc))
            raise
        finally:
            duration_ms = int((time.time() - start) * 1000)
            logger.info("http_request_finished", status_code=status_code, duration_ms=duration_ms)
            clear_contextvars()
