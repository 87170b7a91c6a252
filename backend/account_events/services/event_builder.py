"""
Builds the AccountEvent for a create attempt. Never raises: failed creates still get an event.
"""

from datetime import datetime, timezone

from account_events.schemas.account import CreateOutcome
from account_events.schemas.event import NOT_AVAILABLE, AccountEvent
from account_events.services.salesforce_service import SalesforceServiceError


def _record_id(outcome: CreateOutcome | SalesforceServiceError) -> str | None:
    if isinstance(outcome, CreateOutcome) and outcome.success:
        return outcome.record_id
    return None


def build_account_event(
    outcome: CreateOutcome | SalesforceServiceError,
    query_account_name: str | None,
    *,
    source: str,
    now: datetime | None = None,
) -> AccountEvent:
    """
    accountName comes from the accountName query parameter, not the request body.
    accountId is the created record id, or N/A when the create failed.
    """
    record_id = _record_id(outcome)
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return AccountEvent(
        account_id=record_id or NOT_AVAILABLE,
        account_name=query_account_name or NOT_AVAILABLE,
        timestamp=timestamp,
        status="SUCCESS" if record_id else "FAILED",
        source=source,
    )
