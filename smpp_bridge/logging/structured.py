"""
Structured Logging
==================
structlog configuration for the bridge and request logging for its HTTP
server.

Usage:
    from smpp_bridge.logging import setup_logging, RequestLoggingMiddleware

    setup_logging(service_name="telegram-smpp", debug=config.debug)
    app.add_middleware(RequestLoggingMiddleware)
"""

import logging
import sys
import time
import uuid
from typing import Optional

import structlog

from smpp_bridge.config import DEBUG_FULL

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def setup_logging(
    service_name: str,
    debug: int = 0,
    json_output: bool = False,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure structlog on top of the standard library root logger.

    Args:
        service_name: Bound into every log line as ``service``
        debug: Bridge verbosity; ``debug <= 1`` enables DEBUG records
        json_output: Render JSON lines instead of console output
        level: Explicit level name, overrides ``debug``

    Returns:
        Configured root logger
    """
    if level is None:
        level = "DEBUG" if debug <= DEBUG_FULL else "INFO"
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request URL at INFO, which would leak the bot key
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=SHARED_PROCESSORS + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)

    structlog.get_logger(__name__).info("Logging configured", service=service_name, level=level)
    return root_logger


class RequestLoggingMiddleware:
    """
    ASGI middleware logging each HTTP request and its response.
    """

    def __init__(self, app):
        self.app = app
        self.logger = structlog.get_logger("http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())[:8]
        method = scope.get("method", "")
        path = scope.get("path", "")
        client = scope.get("client") or ("", 0)

        start_time = time.time()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            self.logger.info("Request", method=method, path=path, client_ip=client[0])
            try:
                await self.app(scope, receive, send_wrapper)
            except Exception:
                self.logger.exception("Request failed", method=method, path=path)
                raise
            finally:
                duration_ms = int((time.time() - start_time) * 1000)
                log = self.logger.info if status_code < 400 else self.logger.warning
                log(
                    "Response",
                    method=method,
                    path=path,
                    status_code=status_code,
                    duration_ms=duration_ms,
                )
