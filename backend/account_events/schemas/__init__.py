# Pydantic schemas: pipeline domain types and API response bodies.

from account_events.schemas.account import (
    ACCOUNT_TYPE_PROSPECT,
    AccountRecord,
    AccountRequest,
    CreateOutcome,
)
from account_events.schemas.common import AccountCreatedResponse, ErrorResponse
from account_events.schemas.event import ACCOUNT_CREATED, NOT_AVAILABLE, AccountEvent

__all__ = [
    "ACCOUNT_TYPE_PROSPECT",
    "AccountRecord",
    "AccountRequest",
    "CreateOutcome",
    "AccountCreatedResponse",
    "ErrorResponse",
    "ACCOUNT_CREATED",
    "NOT_AVAILABLE",
    "AccountEvent",
]
