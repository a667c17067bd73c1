"""Health and readiness endpoints.

  /health (liveness)  — "is this process alive?"  Always 200; the body's
                        status field says whether it is impaired.
  /ready (readiness)  — "can this instance take traffic?"  503 until the
                        credential store has been loaded, so a load
                        balancer keeps traffic away from a worker that
                        would only answer 503 on /issue and /verify.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request) -> dict:
    service = getattr(request.app.state, "credential_service", None)
    repo = getattr(request.app.state, "credential_repo", None)

    checks: dict[str, str] = {}
    overall = "ok"

    if service is not None and repo is not None:
        checks["store"] = "ok"
    else:
        checks["store"] = "not_loaded"
        overall = "degraded"

    return {
        "status": overall,
        "worker": request.app.state.settings.worker_id,
        "checks": checks,
        "credentials": len(repo) if repo is not None else 0,
    }


@router.get("/ready")
def ready(request: Request) -> Response:
    if getattr(request.app.state, "credential_service", None) is None:
        return Response(status_code=503)
    return Response(status_code=200)
