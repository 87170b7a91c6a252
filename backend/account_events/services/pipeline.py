"""
Account pipeline: validate -> create in Salesforce -> build event -> publish -> respond.

Every run ends in exactly one PipelineResponse. The response is chosen by the stage the run
stopped at. A failed create still publishes a FAILED event before responding.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from account_events.core.config import Settings, get_settings
from account_events.schemas.account import AccountRecord, CreateOutcome
from account_events.schemas.event import AccountEvent
from account_events.services.event_builder import build_account_event
from account_events.services.event_publisher import EventPublishError, PublishErrorKind
from account_events.services.idempotency import RecordClient
from account_events.services.salesforce_service import SalesforceErrorKind, SalesforceServiceError
from account_events.services.validation import AccountValidationError, validate_account_request

logger = logging.getLogger(__name__)

INVALID_INPUT_ERROR = "Invalid Salesforce input"
SUCCESS_MESSAGE = "Account created and event published successfully"


class EventPublisher(Protocol):
    async def publish(self, destination: str, event: AccountEvent) -> None:
        ...


class PipelineStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RECORD_CREATED = "record_created"
    RECORD_FAILED = "record_failed"
    EVENT_BUILT = "event_built"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"
    RESPONDED = "responded"


@dataclass(frozen=True)
class PipelineResponse:
    status_code: int
    body: dict[str, Any]
    stages: tuple[PipelineStage, ...] = ()


def _unhandled(description: str) -> dict[str, Any]:
    return {"error": f"Unhandled error: {description}"}


class AccountPipeline:
    """Runs one account-creation request end to end. Holds no per-request state."""

    def __init__(
        self,
        record_client: RecordClient,
        publisher: EventPublisher,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._record_client = record_client
        self._publisher = publisher
        self._destination = settings.event_destination
        self._source = settings.event_source
        self._record_timeout = settings.record_timeout_seconds
        self._publish_timeout = settings.publish_timeout_seconds
        self._detached: set[asyncio.Task] = set()

    async def handle(
        self,
        raw: Any,
        query_account_name: str | None = None,
        idempotency_key: str | None = None,
    ) -> PipelineResponse:
        """
        run() shielded from caller cancellation: if the client disconnects, the run still
        finishes through publish and its response is dropped.
        """
        task = asyncio.ensure_future(self.run(raw, query_account_name, idempotency_key))
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning("Caller went away; account pipeline continues in background")
            raise

    async def run(
        self,
        raw: Any,
        query_account_name: str | None = None,
        idempotency_key: str | None = None,
    ) -> PipelineResponse:
        stages = [PipelineStage.RECEIVED]

        try:
            request = validate_account_request(raw)
        except AccountValidationError as e:
            logger.info("Rejected account request: %s", e.details)
            return self._respond(stages, 400, {"error": INVALID_INPUT_ERROR, "details": e.details})
        stages.append(PipelineStage.VALIDATED)

        record = AccountRecord.from_request(request)
        try:
            outcome = await self._create_record(record, idempotency_key)
        except SalesforceServiceError as e:
            stages.append(PipelineStage.RECORD_FAILED)
            logger.warning("Salesforce create failed (%s): %s", e.kind.value, e.message)
            event = build_account_event(e, query_account_name, source=self._source)
            stages.append(PipelineStage.EVENT_BUILT)
            await self._publish_failure_event(event, stages)
            if e.kind is SalesforceErrorKind.INVALID_INPUT:
                return self._respond(stages, 400, {"error": INVALID_INPUT_ERROR, "details": e.message})
            return self._respond(stages, 500, _unhandled(e.message))
        stages.append(PipelineStage.RECORD_CREATED)

        event = build_account_event(outcome, query_account_name, source=self._source)
        stages.append(PipelineStage.EVENT_BUILT)
        try:
            await self._publish(event)
        except EventPublishError as e:
            stages.append(PipelineStage.PUBLISH_FAILED)
            logger.error(
                "Account %s created but event publish failed: %s", outcome.record_id, e.message
            )
            return self._respond(stages, 500, _unhandled(e.message))
        stages.append(PipelineStage.PUBLISHED)

        return self._respond(
            stages,
            200,
            {"message": SUCCESS_MESSAGE, "accountId": outcome.record_id, "success": True},
        )

    def _respond(
        self,
        stages: list[PipelineStage],
        status_code: int,
        body: dict[str, Any],
    ) -> PipelineResponse:
        stages.append(PipelineStage.RESPONDED)
        logger.info(
            "Account pipeline responded %d after %s",
            status_code,
            " -> ".join(stage.value for stage in stages),
        )
        return PipelineResponse(status_code=status_code, body=body, stages=tuple(stages))

    async def _create_record(
        self,
        record: AccountRecord,
        idempotency_key: str | None,
    ) -> CreateOutcome:
        try:
            outcome = await asyncio.wait_for(
                asyncio.to_thread(self._record_client.create_account, record, idempotency_key),
                timeout=self._record_timeout,
            )
        except SalesforceServiceError:
            raise
        except asyncio.TimeoutError:
            raise SalesforceServiceError(
                f"Salesforce did not respond within {self._record_timeout:g}s"
            ) from None
        except Exception as e:
            logger.exception("Record client error: %s", e)
            raise SalesforceServiceError(str(e) or type(e).__name__) from e

        if not outcome.success:
            raise SalesforceServiceError(
                outcome.error_description or "Salesforce rejected the account",
                kind=SalesforceErrorKind.INVALID_INPUT,
            )
        return outcome

    async def _publish(self, event: AccountEvent) -> None:
        try:
            await asyncio.wait_for(
                self._publisher.publish(self._destination, event),
                timeout=self._publish_timeout,
            )
        except EventPublishError:
            raise
        except asyncio.TimeoutError:
            raise EventPublishError(
                f"Event channel did not acknowledge within {self._publish_timeout:g}s",
                kind=PublishErrorKind.CHANNEL_UNAVAILABLE,
                destination=self._destination,
            ) from None
        except Exception as e:
            logger.exception("Event publisher error: %s", e)
            raise EventPublishError(
                str(e) or type(e).__name__,
                kind=PublishErrorKind.CHANNEL_UNAVAILABLE,
                destination=self._destination,
            ) from e

    async def _publish_failure_event(self, event: AccountEvent, stages: list[PipelineStage]) -> None:
        """The record failure decides the response; a publish failure here is only logged."""
        try:
            await self._publish(event)
        except EventPublishError as e:
            stages.append(PipelineStage.PUBLISH_FAILED)
            logger.error("FAILED event could not be published: %s", e.message)
            return
        stages.append(PipelineStage.PUBLISHED)
