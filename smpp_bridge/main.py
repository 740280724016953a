"""
Bridge Entrypoint
=================
Builds the ASGI application and runs it under uvicorn.

Usage:
    smpp-bridge --config /etc/telegram-smpp/conf.json
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import click
import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from smpp_bridge import __version__
from smpp_bridge.api import create_gateway_router
from smpp_bridge.config import BridgeConfig, ConfigError, load_config
from smpp_bridge.health import create_health_router
from smpp_bridge.logging import RequestLoggingMiddleware, setup_logging
from smpp_bridge.messaging import InboundMessageHandler
from smpp_bridge.metrics import BridgeMetrics, MetricLabels
from smpp_bridge.rate_limit import TokenBucketLimiter
from smpp_bridge.relay import TelegramRelayClient
from smpp_bridge.session import MessageHandler, SmppLibSession, SmppSession
from smpp_bridge.status import ConnectionStatusReporter

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[BridgeConfig, MessageHandler], SmppSession]

# Upper bound for the status reporter to drain after the session closes
SHUTDOWN_TIMEOUT = 10.0


def default_session_factory(config: BridgeConfig, handler: MessageHandler) -> SmppSession:
    host, port = config.smpp_address
    return SmppLibSession(
        host=host,
        port=port,
        system_id=config.username,
        password=config.password,
        handler=handler,
    )


def create_app(
    config: BridgeConfig,
    session_factory: Optional[SessionFactory] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Wire the bridge components into a FastAPI application.

    Args:
        config: Loaded configuration
        session_factory: Builds the SMPP session from config and the inbound
            handler; defaults to SmppLibSession
        http_client: Client for the Telegram API (tests inject a mock transport)
    """
    metrics = BridgeMetrics(MetricLabels(service=config.name, version=__version__))
    relay = TelegramRelayClient(config, client=http_client, metrics=metrics)
    handler = InboundMessageHandler(config, relay, metrics=metrics)
    session = (session_factory or default_session_factory)(config, handler.handle)
    limiter = TokenBucketLimiter(rate=config.rate_limit, burst=config.rate_burst)
    reporter = ConnectionStatusReporter()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Bridge starting", program=config.name, smpp=config.smpp, listen=config.address)
        reporter.events = await session.start()
        reporter_task = asyncio.create_task(reporter.run(), name="smpp-status")
        try:
            yield
        finally:
            logger.info("Bridge stopping")
            await session.close()
            await handler.drain()
            try:
                await asyncio.wait_for(reporter_task, timeout=SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Status reporter did not stop in time")
            await relay.aclose()

    app = FastAPI(title=config.name, version=__version__, lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(
        create_health_router(
            service_name=config.name,
            session=session,
            version=__version__,
            reporter=reporter,
            metrics=metrics,
            limiter=limiter,
        )
    )
    app.include_router(create_gateway_router(session, limiter, metrics=metrics))

    app.state.config = config
    app.state.session = session
    app.state.handler = handler
    app.state.limiter = limiter
    app.state.reporter = reporter
    app.state.metrics = metrics
    return app


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    envvar="SMPP_BRIDGE_CONFIG",
    help="Path to conf.json (default: /etc/telegram-smpp/conf.json).",
)
@click.option("--json-logs", is_flag=True, default=False, help="Emit JSON log lines.")
def main(config_path: Optional[str], json_logs: bool) -> None:
    """Relay SMPP deliveries to Telegram and accept submissions over HTTP."""
    setup_logging(service_name="smpp-bridge", json_output=json_logs)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("Error when config read... Stop.", error=str(e))
        raise SystemExit(1)

    setup_logging(service_name=config.name, debug=config.debug, json_output=json_logs)
    host, port = config.listen_address
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
