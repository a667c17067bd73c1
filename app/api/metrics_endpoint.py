"""Prometheus scrape endpoint.

Returns the text exposition format (not JSON), e.g.

  credential_operations_total{operation="issue",result="issued"} 12.0

Each worker exposes only its own counters.  Restrict access to this path
in a real deployment; it reveals request rates and error patterns.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
