"""
Shared fixtures: settings that never read a real .env, and in-memory fakes for the two
boundary adapters (record system and event channel).
"""

import asyncio
import threading
import time

import pytest

from account_events.core.config import Settings
from account_events.schemas.account import AccountRecord, CreateOutcome
from account_events.schemas.event import AccountEvent
from account_events.services.pipeline import AccountPipeline


class FakeRecordClient:
    """Counts calls; returns outcome or raises error. delay blocks the worker thread."""

    def __init__(
        self,
        outcome: CreateOutcome | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.outcome = outcome or CreateOutcome.created("001xx")
        self.error = error
        self.delay = delay
        self.calls: list[tuple[AccountRecord, str | None]] = []
        self._lock = threading.Lock()

    def create_account(self, record: AccountRecord, idempotency_key: str | None = None) -> CreateOutcome:
        with self._lock:
            self.calls.append((record, idempotency_key))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.outcome


class FakePublisher:
    def __init__(self) -> None:
        self.published: list[tuple[str, AccountEvent]] = []
        self.attempts = 0
        self.error: Exception | None = None
        self.delay = 0.0

    async def publish(self, destination: str, event: AccountEvent) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.published.append((destination, event))

    @property
    def events(self) -> list[AccountEvent]:
        return [event for _, event in self.published]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        SALESFORCE_INSTANCE_URL="https://test.my.salesforce.com/",
        SALESFORCE_ACCESS_TOKEN="test-token",
        SALESFORCE_API_VERSION="v59.0",
        SALESFORCE_MAX_RETRIES=2,
        RECORD_TIMEOUT_SECONDS=2,
        EVENT_BOOTSTRAP_SERVERS="broker-1:9092, broker-2:9092",
        EVENT_DESTINATION="account-events-test",
        EVENT_SOURCE="account-events-api",
        PUBLISH_TIMEOUT_SECONDS=2,
    )


@pytest.fixture
def record_client() -> FakeRecordClient:
    return FakeRecordClient()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def pipeline(settings, record_client, publisher) -> AccountPipeline:
    return AccountPipeline(record_client, publisher, settings)


@pytest.fixture
def acme_payload() -> dict:
    return {"accountName": "Acme", "phone": "555", "city": "NYC", "industry": "Tech"}
