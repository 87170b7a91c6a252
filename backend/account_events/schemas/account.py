"""
Account schemas: the validated inbound request, the Salesforce record it maps to,
and the outcome of a create call.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ACCOUNT_TYPE_PROSPECT = "Prospect"


class AccountRequest(BaseModel):
    """Validated account-creation request. Built by validate_account_request only."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account_name: str = Field(..., min_length=1, alias="accountName")
    phone: str = ""
    city: str = ""
    industry: str = ""


class AccountRecord(BaseModel):
    """Salesforce Account fields sent on create. Type is always Prospect for this flow."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., alias="Name")
    phone: str = Field("", alias="Phone")
    billing_city: str = Field("", alias="BillingCity")
    industry: str = Field("", alias="Industry")
    type: Literal["Prospect"] = Field(ACCOUNT_TYPE_PROSPECT, alias="Type")

    @classmethod
    def from_request(cls, request: AccountRequest) -> "AccountRecord":
        return cls(
            name=request.account_name,
            phone=request.phone,
            billing_city=request.city,
            industry=request.industry,
        )

    def to_salesforce_payload(self) -> dict[str, Any]:
        """Salesforce field names; empty optional fields are sent as null."""
        payload = self.model_dump(by_alias=True)
        return {field: (value if value != "" else None) for field, value in payload.items()}


class CreateOutcome(BaseModel):
    """Result of a record-system create. record_id is set iff success."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    record_id: str | None = Field(None, alias="recordId")
    error_description: str | None = Field(None, alias="errorDescription")

    @model_validator(mode="after")
    def check_record_id(self) -> "CreateOutcome":
        if self.success and not self.record_id:
            raise ValueError("recordId is required when success is true")
        if not self.success and self.record_id:
            raise ValueError("recordId must be empty when success is false")
        return self

    @classmethod
    def created(cls, record_id: str) -> "CreateOutcome":
        return cls(success=True, record_id=record_id)

    @classmethod
    def failed(cls, description: str) -> "CreateOutcome":
        return cls(success=False, error_description=description)
