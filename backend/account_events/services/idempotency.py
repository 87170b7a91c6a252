"""
Idempotency guard for record clients.

Calls that share an idempotency key are serialized, and once one of them has produced a
successful outcome the remaining ones get that outcome back without reaching Salesforce.
Failures are not remembered, so a retried request after a failure makes a fresh attempt.
Reusing a remembered key for a different account is rejected as invalid input.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol

from account_events.schemas.account import AccountRecord, CreateOutcome
from account_events.services.salesforce_service import SalesforceErrorKind, SalesforceServiceError

logger = logging.getLogger(__name__)


class RecordClient(Protocol):
    def create_account(
        self,
        record: AccountRecord,
        idempotency_key: str | None = None,
    ) -> CreateOutcome:
        ...


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class IdempotentRecordClient:
    """Wraps a RecordClient; thread-safe since pipeline runs call it from worker threads."""

    def __init__(
        self,
        inner: RecordClient,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._ttl = ttl_seconds
        self._clock = clock
        self._outcomes: dict[str, tuple[float, AccountRecord, CreateOutcome]] = {}
        self._key_locks: dict[str, _KeyLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def _holding(self, key: str) -> Iterator[None]:
        # Entries live only while someone holds or waits on them.
        with self._guard:
            entry = self._key_locks.setdefault(key, _KeyLock())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._key_locks[key]

    def _cached(self, key: str, record: AccountRecord) -> CreateOutcome | None:
        now = self._clock()
        with self._guard:
            for expired in [k for k, (expires, _, _) in self._outcomes.items() if expires <= now]:
                del self._outcomes[expired]
            entry = self._outcomes.get(key)
        if entry is None:
            return None
        _, first_record, outcome = entry
        if first_record != record:
            raise SalesforceServiceError(
                f"Idempotency key {key} was already used for a different account",
                kind=SalesforceErrorKind.INVALID_INPUT,
            )
        return outcome

    def create_account(
        self,
        record: AccountRecord,
        idempotency_key: str | None = None,
    ) -> CreateOutcome:
        if not idempotency_key:
            return self._inner.create_account(record)

        with self._holding(idempotency_key):
            cached = self._cached(idempotency_key, record)
            if cached is not None:
                logger.info(
                    "Idempotency key %s already created account %s; skipping create",
                    idempotency_key,
                    cached.record_id,
                )
                return cached
            outcome = self._inner.create_account(record, idempotency_key)
            if outcome.success:
                with self._guard:
                    self._outcomes[idempotency_key] = (self._clock() + self._ttl, record, outcome)
            return outcome
