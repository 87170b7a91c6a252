"""Kafka publisher for AccountEvent documents."""

import asyncio
import logging
import ssl
from enum import Enum
from typing import Any

from aiokafka import AIOKafkaProducer
from aiokafka.errors import (
    KafkaConnectionError,
    KafkaError,
    KafkaTimeoutError,
    NodeNotReadyError,
    RequestTimedOutError,
)

from account_events.core.config import Settings, get_settings
from account_events.schemas.event import NOT_AVAILABLE, AccountEvent

logger = logging.getLogger(__name__)

_UNAVAILABLE_ERRORS = (
    KafkaConnectionError,
    KafkaTimeoutError,
    NodeNotReadyError,
    RequestTimedOutError,
)


class PublishErrorKind(str, Enum):
    CHANNEL_UNAVAILABLE = "channel_unavailable"
    REJECTED = "rejected"


class EventPublishError(Exception):
    """Raised when an event could not be handed to the broker."""

    def __init__(
        self,
        message: str,
        kind: PublishErrorKind = PublishErrorKind.CHANNEL_UNAVAILABLE,
        destination: str | None = None,
    ) -> None:
        self.message = message
        self.kind = kind
        self.destination = destination
        super().__init__(message)


def build_security_config(settings: Settings) -> dict[str, Any]:
    """Build aiokafka security kwargs. Returns an empty dict for PLAINTEXT connections."""
    if settings.event_security_protocol == "PLAINTEXT":
        return {}

    security_config: dict[str, Any] = {"security_protocol": settings.event_security_protocol}
    if "SSL" in settings.event_security_protocol:
        security_config["ssl_context"] = ssl.create_default_context()
    if settings.event_security_protocol.startswith("SASL"):
        security_config["sasl_mechanism"] = settings.event_sasl_mechanism
        security_config["sasl_plain_username"] = settings.event_sasl_username
        security_config["sasl_plain_password"] = settings.event_sasl_password
    return security_config


def _partition_key(event: AccountEvent) -> bytes | None:
    """Failed events carry no account id; leave them unkeyed so they spread across partitions."""
    if event.account_id == NOT_AVAILABLE:
        return None
    return event.account_id.encode("utf-8")


class KafkaEventPublisher:
    """Async producer; one send_and_wait per event, acks=all with idempotence."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._producer: AIOKafkaProducer | None = None
        self._started = False
        self._start_lock = asyncio.Lock()

    def _producer_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "bootstrap_servers": self.settings.bootstrap_servers_list,
            "client_id": self.settings.event_source,
            "acks": "all",
            "enable_idempotence": True,
            "request_timeout_ms": int(self.settings.publish_timeout_seconds * 1000),
        }
        config.update(build_security_config(self.settings))
        return config

    async def start(self) -> None:
        async with self._start_lock:
            if self._started:
                logger.debug("Publisher already started")
                return

            logger.info(
                "Starting event publisher",
                extra={
                    "bootstrap_servers": self.settings.event_bootstrap_servers,
                    "security_protocol": self.settings.event_security_protocol,
                },
            )
            producer = AIOKafkaProducer(**self._producer_config())
            started = False
            try:
                await producer.start()
                started = True
            except Exception as e:
                raise EventPublishError(
                    f"Event channel unavailable: {e!s}",
                    kind=PublishErrorKind.CHANNEL_UNAVAILABLE,
                ) from e
            finally:
                # Also runs when a publish timeout cancels a slow start.
                if not started:
                    await producer.stop()
            self._producer = producer
            self._started = True
            logger.info("Event publisher started")

    async def stop(self) -> None:
        if self._producer is None:
            logger.debug("Publisher already stopped")
            return
        logger.info("Stopping event publisher")
        try:
            if self._started:
                await self._producer.flush()
            await self._producer.stop()
            logger.info("Event publisher stopped")
        except Exception as e:
            logger.error("Error stopping event publisher", extra={"error": str(e)}, exc_info=True)
        finally:
            self._producer = None
            self._started = False

    @property
    def is_started(self) -> bool:
        return self._started and self._producer is not None

    async def publish(self, destination: str, event: AccountEvent) -> None:
        """Send one event and wait for the broker acknowledgment."""
        if not self.is_started:
            # Broker may have been down at startup; try once per publish.
            await self.start()

        value = event.to_message()
        headers = [
            ("eventType", event.event_type.encode("utf-8")),
            ("status", event.status.encode("utf-8")),
        ]
        try:
            metadata = await self._producer.send_and_wait(
                destination,
                key=_partition_key(event),
                value=value,
                headers=headers,
            )
        except _UNAVAILABLE_ERRORS as e:
            logger.error(
                "Event channel unavailable",
                extra={"topic": destination, "error": str(e)},
            )
            raise EventPublishError(
                f"Event channel unavailable: {e!s}",
                kind=PublishErrorKind.CHANNEL_UNAVAILABLE,
                destination=destination,
            ) from e
        except KafkaError as e:
            logger.error(
                "Event rejected by broker",
                extra={"topic": destination, "error": str(e)},
            )
            raise EventPublishError(
                f"Event rejected by broker: {e!s}",
                kind=PublishErrorKind.REJECTED,
                destination=destination,
            ) from e

        logger.info(
            "Published %s event for account %s",
            event.status,
            event.account_id,
            extra={"topic": metadata.topic, "partition": metadata.partition, "offset": metadata.offset},
        )
