"""
Inbound payload validation. Pure: no I/O, no logging.
"""

from enum import Enum
from typing import Any

from account_events.schemas.account import AccountRequest

ACCOUNT_NAME_FIELD = "accountName"
OPTIONAL_FIELDS = ("phone", "city", "industry")


class ValidationErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    MALFORMED_FIELD = "malformed_field"


class AccountValidationError(Exception):
    """Raised when an inbound account payload cannot become an AccountRequest."""

    def __init__(self, details: str, kind: ValidationErrorKind, field: str | None = None) -> None:
        self.details = details
        self.kind = kind
        self.field = field
        super().__init__(details)


def _required_str(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None or value == "":
        raise AccountValidationError(
            f"{key} required", kind=ValidationErrorKind.MISSING_FIELD, field=key
        )
    if not isinstance(value, str):
        raise AccountValidationError(
            f"{key} must be a string", kind=ValidationErrorKind.MALFORMED_FIELD, field=key
        )
    return value


def _optional_str(raw: dict[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise AccountValidationError(
            f"{key} must be a string", kind=ValidationErrorKind.MALFORMED_FIELD, field=key
        )
    return value


def validate_account_request(raw: Any) -> AccountRequest:
    """
    Build an AccountRequest from a decoded JSON body.
    accountName must be a non-empty string; phone/city/industry default to "" when absent or null.
    Unknown keys are ignored.
    """
    if not isinstance(raw, dict):
        raise AccountValidationError(
            "request body must be a JSON object", kind=ValidationErrorKind.MALFORMED_FIELD
        )
    account_name = _required_str(raw, ACCOUNT_NAME_FIELD)
    optional = {key: _optional_str(raw, key) for key in OPTIONAL_FIELDS}
    return AccountRequest(account_name=account_name, **optional)
