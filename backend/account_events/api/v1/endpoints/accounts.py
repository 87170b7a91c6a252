"""
Accounts endpoint. Creates the account in Salesforce and publishes the outcome event.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from account_events.schemas.common import AccountCreatedResponse, ErrorResponse
from account_events.services.pipeline import AccountPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])

_NO_BODY = object()


def get_account_pipeline(request: Request) -> AccountPipeline:
    """Dependency: the pipeline built at startup (see main.lifespan)."""
    return request.app.state.account_pipeline


async def _read_json_body(request: Request) -> Any:
    """Decoded JSON body, or a sentinel the validator rejects as malformed."""
    try:
        return await request.json()
    except ValueError:
        return _NO_BODY


@router.post(
    "",
    summary="Create account",
    description=(
        "Create a Prospect account in Salesforce and publish an ACCOUNT_CREATED event. "
        "The accountName query parameter labels the event only."
    ),
    response_model=AccountCreatedResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid Salesforce input"},
        500: {"model": ErrorResponse, "description": "Record system or event channel failure"},
    },
)
async def create_account(
    request: Request,
    account_name: str | None = Query(
        None,
        alias="accountName",
        description="Display name stamped on the published event",
    ),
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    pipeline: AccountPipeline = Depends(get_account_pipeline),
) -> JSONResponse:
    """POST /api/v1/accounts — validate, create, publish, respond."""
    raw = await _read_json_body(request)
    result = await pipeline.handle(
        raw,
        query_account_name=account_name,
        idempotency_key=idempotency_key,
    )
    return JSONResponse(status_code=result.status_code, content=result.body)
