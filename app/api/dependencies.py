from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from app.services.credential_service import CredentialService

logger = logging.getLogger(__name__)


def get_credential_service(request: Request) -> CredentialService:
    """Return the process-wide CredentialService built during startup.

    Used as a FastAPI dependency by the credential endpoints.
    """
    service: CredentialService | None = getattr(
        request.app.state, "credential_service", None
    )
    if service is None:
        logger.error("Credential service requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="credential store not loaded",
        )
    return service
