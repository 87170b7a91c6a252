"""
AccountEvent schema: the document published to the event channel after every create attempt.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ACCOUNT_CREATED = "ACCOUNT_CREATED"
NOT_AVAILABLE = "N/A"

EventStatus = Literal["SUCCESS", "FAILED"]


class AccountEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: Literal["ACCOUNT_CREATED"] = Field(ACCOUNT_CREATED, alias="eventType")
    account_id: str = Field(..., alias="accountId")
    account_name: str = Field(..., alias="accountName")
    timestamp: str = Field(..., description="ISO-8601, UTC")
    status: EventStatus
    source: str

    def to_message(self) -> bytes:
        """Wire form: camelCase JSON, UTF-8."""
        return self.model_dump_json(by_alias=True).encode("utf-8")
