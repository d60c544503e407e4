import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

REQUEST_ID_HEADER = "X-Request-ID"

logger = structlog.get_logger(__name__)


def _incoming_request_id(request: HttpRequest) -> str:
    return request.headers.get(REQUEST_ID_HEADER) or request.headers.get(
        "X-Correlation-ID", ""
    )


class CorrelationIdMiddleware:
    """Tags every log line of a request with its correlation id.

    The id comes from ``X-Request-ID`` (or ``X-Correlation-ID``), else a new
    UUID4.  It is bound through structlog contextvars, so order events
    logged by the service and the outbox deliveries run on commit carry
    it too, and it is echoed back in ``X-Request-ID``.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _incoming_request_id(request) or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info("request.started", method=request.method, path=request.path)
        try:
            response = self.get_response(request)
            logger.info(
                "request.finished",
                method=request.method,
                path=request.path,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            )
            response[REQUEST_ID_HEADER] = cid
            return response
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")
