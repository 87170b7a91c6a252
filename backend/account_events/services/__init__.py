# Services: validation, Salesforce, event building/publishing, pipeline orchestration

from account_events.services.event_builder import build_account_event
from account_events.services.event_publisher import (
    EventPublishError,
    KafkaEventPublisher,
    PublishErrorKind,
)
from account_events.services.idempotency import IdempotentRecordClient, RecordClient
from account_events.services.pipeline import (
    AccountPipeline,
    EventPublisher,
    PipelineResponse,
    PipelineStage,
)
from account_events.services.salesforce_service import (
    SalesforceErrorKind,
    SalesforceService,
    SalesforceServiceError,
    get_salesforce_service,
)
from account_events.services.validation import (
    AccountValidationError,
    ValidationErrorKind,
    validate_account_request,
)

__all__ = [
    "build_account_event",
    "EventPublishError",
    "KafkaEventPublisher",
    "PublishErrorKind",
    "IdempotentRecordClient",
    "RecordClient",
    "AccountPipeline",
    "EventPublisher",
    "PipelineResponse",
    "PipelineStage",
    "SalesforceErrorKind",
    "SalesforceService",
    "SalesforceServiceError",
    "get_salesforce_service",
    "AccountValidationError",
    "ValidationErrorKind",
    "validate_account_request",
]
