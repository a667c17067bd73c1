"""Credential issuance and verification endpoints.

- POST /issue  — issue a credential id (idempotent)
- POST /verify — check whether a credential id was issued

Issuance is synchronous: the record is on disk before the response is
sent.  A repeated issue returns 200 with the original metadata instead
of 201.  Handlers are plain ``def`` so the blocking file write runs in
the threadpool rather than on the event loop.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import get_credential_service
from app.services.credential_service import (
    CredentialService,
    CredentialServiceError,
    CredentialValidationError,
)

router = APIRouter(tags=["credentials"])


class CredentialIn(BaseModel):
    # Optional so a missing id is reported by the service as a 400,
    # the same as an empty one.
    id: str | None = None


class CredentialIssueOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    worker: str
    issued_at: datetime = Field(alias="issuedAt")


class CredentialVerifyOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    worker: str | None = None
    issued_at: datetime | None = Field(default=None, alias="issuedAt")


CredentialServiceDep = Annotated[CredentialService, Depends(get_credential_service)]


@router.post(
    "/issue",
    response_model=CredentialIssueOut,
    status_code=status.HTTP_201_CREATED,
)
def issue_credential(
    body: CredentialIn,
    response: Response,
    service: CredentialServiceDep,
) -> CredentialIssueOut:
    try:
        result = service.issue(body.id)
    except CredentialValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except CredentialServiceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from None

    if not result.created:
        response.status_code = status.HTTP_200_OK

    return CredentialIssueOut(
        message=result.message,
        worker=result.record.worker_id,
        issued_at=result.record.issued_at,
    )


@router.post(
    "/verify",
    response_model=CredentialVerifyOut,
    response_model_exclude_none=True,
)
def verify_credential(
    body: CredentialIn,
    service: CredentialServiceDep,
) -> CredentialVerifyOut:
    try:
        result = service.verify(body.id)
    except CredentialValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    return CredentialVerifyOut(
        valid=result.valid,
        worker=result.worker_id,
        issued_at=result.issued_at,
    )
