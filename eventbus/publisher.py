"""Publisher: serialize a payload and hand it to the publish channel.

Every message is persistent and routed through the default exchange straight
to the queue of the same name. Publishing is fire-and-forget: no publisher
confirm is awaited, so durability is guaranteed by the broker's storage only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eventbus.config import Settings
from eventbus.connection import ConnectionManager
from eventbus.constants import require_known_queue
from eventbus.errors import ChannelUnavailable, SerializationError, UnknownQueue
from eventbus.metrics import PUBLISH_ATTEMPT_TOTAL, PUBLISH_FAILED_TOTAL
from eventbus.rabbit import CHANNEL_ERRORS, build_message, encode_payload
from eventbus.tracing import get_tracer, inject_headers
from eventbus.validation import validate_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishReceipt:
    """What was handed to the broker for a successful ``publish`` call."""
    queue: str
    message_id: str
    size: int


class Publisher:
    def __init__(self, manager: ConnectionManager, settings: Settings | None = None) -> None:
        self._manager = manager
        self._settings = settings or manager.settings
        self._tracer = get_tracer("eventbus.publisher")

    async def publish(self, queue: str, payload: Any) -> PublishReceipt:
        """Publish ``payload`` to ``queue`` as a persistent JSON message.

        Raises:
            UnknownQueue: ``queue`` is not in the registry.
            ChannelUnavailable: the client is not READY, or the channel died
                while publishing. No network I/O happens in the first case.
            SerializationError: the payload is not JSON-encodable (or fails the
                per-queue model when ``validate_payloads`` is enabled).
        """
        try:
            require_known_queue(queue)
            channel = self._manager.require_channel("publish")
            if self._settings.validate_payloads:
                validate_payload(queue, payload)
            body = encode_payload(queue, payload)
        except (UnknownQueue, ChannelUnavailable, SerializationError) as exc:
            self._record_failure(queue, exc)
            raise

        with self._tracer.start_as_current_span("publish") as span:
            span.set_attribute("messaging.destination", queue)
            message = build_message(body, headers=inject_headers())
            try:
                await channel.default_exchange.publish(message, routing_key=queue)
            except CHANNEL_ERRORS as exc:
                span.record_exception(exc)
                span.set_attribute("error", True)
                error = ChannelUnavailable(self._manager.state.value, "publish")
                self._record_failure(queue, error)
                raise error from exc

        PUBLISH_ATTEMPT_TOTAL.labels(queue=queue, result="ok").inc()
        logger.info("Published to %s", queue, extra={"message_id": message.message_id, "size": len(body)})
        return PublishReceipt(queue=queue, message_id=str(message.message_id), size=len(body))

    @staticmethod
    def _record_failure(queue: str, exc: Exception) -> None:
        PUBLISH_ATTEMPT_TOTAL.labels(queue=queue, result="error").inc()
        PUBLISH_FAILED_TOTAL.labels(reason=exc.__class__.__name__).inc()
        logger.warning("Failed to publish to %s: %s", queue, exc)
