"""
Outbound Gateway
================
HTTP endpoint that submits short messages over the SMPP session.
"""

from typing import Dict, Iterable, Optional

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from smpp_bridge.metrics import BridgeMetrics, MetricNames
from smpp_bridge.rate_limit import TokenBucketLimiter
from smpp_bridge.session import NotConnectedError, SessionError, ShortMessage, SmppSession

logger = structlog.get_logger(__name__)

NOT_CONNECTED_BODY = "Oops."

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_form_values(request: Request, names: Iterable[str]) -> Dict[str, str]:
    """
    Read parameters from the form body, falling back to the query string.

    Missing parameters come back as empty strings; an unparseable body is
    treated as empty.
    """
    form = {}
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        try:
            form = await request.form()
        except Exception as e:
            logger.warning("Can't parse form body", error=str(e))

    values = {}
    for name in names:
        value = form.get(name)
        if not isinstance(value, str):
            value = request.query_params.get(name, "")
        values[name] = value
    return values


def create_gateway_router(
    session: SmppSession,
    limiter: TokenBucketLimiter,
    metrics: Optional[BridgeMetrics] = None,
) -> APIRouter:
    """
    Create the submission router.

    Args:
        session: Bound SMPP session used for submit_sm
        limiter: Token bucket shared by every submission
        metrics: Optional counters for submission outcomes

    Returns:
        FastAPI router serving ``GET /`` and ``POST /``
    """
    router = APIRouter(tags=["Gateway"])

    def count(name: str) -> None:
        if metrics is not None:
            metrics.increment(name)

    @router.api_route("/", methods=["GET", "POST"], response_class=PlainTextResponse)
    async def submit_message(request: Request) -> PlainTextResponse:
        """Submit ``text`` from ``src`` to ``dst``; answers with the SMSC message id."""
        params = await read_form_values(request, ("src", "dst", "text"))
        message = ShortMessage(
            source=params["src"],
            destination=params["dst"],
            text=params["text"],
            register_receipt=True,
        )

        waited = await limiter.acquire()
        if metrics is not None:
            metrics.observe(MetricNames.RATE_LIMIT_WAIT, waited)

        try:
            message_id = await session.submit(message)
        except NotConnectedError:
            count(MetricNames.SUBMIT_UNAVAILABLE)
            logger.warning("SMPP session not connected, submission refused", dst=message.destination)
            return PlainTextResponse(NOT_CONNECTED_BODY, status_code=503)
        except SessionError as e:
            count(MetricNames.SUBMIT_REJECTED)
            logger.warning("Submission failed", dst=message.destination, error=str(e), status=e.status)
            return PlainTextResponse(str(e), status_code=400)
        except Exception as e:
            count(MetricNames.SUBMIT_REJECTED)
            logger.exception("Unexpected submission error", dst=message.destination)
            return PlainTextResponse(str(e), status_code=400)

        count(MetricNames.SUBMIT_ACCEPTED)
        logger.info("Message submitted", src=message.source, dst=message.destination, message_id=message_id)
        return PlainTextResponse(message_id)

    return router
