"""
Response body schemas. The accounts endpoint only ever returns one of these two shapes.
"""

from pydantic import BaseModel


class AccountCreatedResponse(BaseModel):
    message: str
    accountId: str
    success: bool = True


class ErrorResponse(BaseModel):
    """details is present for 400s and omitted for 500s."""
    error: str
    details: str | None = None
