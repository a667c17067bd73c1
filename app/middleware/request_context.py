"""Request context middleware: request IDs, timing and worker tagging.

Every request gets an ID (the client's X-Request-ID, or a fresh UUID).
The ID is held in a ContextVar rather than a thread-local: async
requests share a thread, and sync handlers run in a threadpool that
copies the context in, so a ContextVar is the one place both can read.

Every response is tagged with X-Worker-ID so a client talking to a pool
of replicas can see which one answered.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.logging import request_id_var

logger = logging.getLogger(__name__)

WORKER_HEADER = "X-Worker-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request and logs one summary line.

    Sets X-Request-ID and X-Worker-ID on every response the app returns,
    4xx and handled 5xx included.  An unhandled exception has no response
    to tag: it is logged as a 500 summary and re-raised for Starlette's
    ServerErrorMiddleware to answer.
    """

    def __init__(self, app: ASGIApp, *, worker_id: str) -> None:
        super().__init__(app)
        self.worker_id = worker_id

    def _log_summary(
        self, request: Request, req_id: str, status_code: int, start: float
    ) -> None:
        duration_ms = round((time.monotonic() - start) * 1000, 1)
        logger.log(
            logging.ERROR if status_code >= 500 else logging.INFO,
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            },
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            self._log_summary(request, req_id, 500, start)
            raise

        self._log_summary(request, req_id, response.status_code, start)

        response.headers["X-Request-ID"] = req_id
        response.headers[WORKER_HEADER] = self.worker_id

        return response
