"""Consumer registrar: per-queue handler bindings and acknowledgment.

Delivery protocol for each incoming message:

1. Decode the JSON body. An undecodable body is fatal to that delivery only:
   it is logged and rejected without requeue.
2. Await the handler with the decoded payload.
3. Handler returned: ack (the broker removes the message).
   Handler raised: no ack. The failure is logged as ``HandlerError`` and the
   message stays with the broker for redelivery, either when the channel is
   reset (default) or right away via ``nack(requeue=True)`` when
   ``Settings.requeue_on_handler_error`` is set.

There is never an ack before the handler finishes, so a crash mid-handler
means redelivery (at-least-once). Handlers must be idempotent.

Each binding consumes on its own channel. After a reconnect the connection
manager calls ``rebind`` and every binding is attached to a fresh channel.
When the broker closes only a binding's channel (for example a
``consumer_timeout`` PRECONDITION_FAILED) while the connection stays up, that
binding alone is re-attached, retrying at the reconnect interval.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from aio_pika.abc import AbstractChannel, AbstractIncomingMessage
from opentelemetry import context  # type: ignore

from eventbus.config import Settings
from eventbus.connection import ConnectionManager
from eventbus.constants import require_known_queue
from eventbus.errors import ChannelUnavailable, DuplicateConsumer, HandlerError, SerializationError
from eventbus.metrics import CONSUMER_MESSAGE_TOTAL, HANDLER_LATENCY_SECONDS
from eventbus.rabbit import CHANNEL_ERRORS, declare_queue, decode_payload
from eventbus.tracing import extract_context_from_headers, get_tracer

logger = logging.getLogger(__name__)


Handler = Callable[[Any], Awaitable[Any]]


@dataclass
class HandlerBinding:
    """Association between a registry queue and its handler for this process."""
    queue: str
    handler: Handler
    channel: AbstractChannel | None = None
    consumer_tag: str | None = None

    @property
    def attached(self) -> bool:
        return self.channel is not None and not self.channel.is_closed


class ConsumerRegistrar:
    def __init__(self, manager: ConnectionManager, settings: Settings | None = None) -> None:
        self._manager = manager
        self._settings = settings or manager.settings
        self._bindings: dict[str, HandlerBinding] = {}
        self._tracer = get_tracer("eventbus.consumer")
        self._acked = 0
        self._failed = 0
        self._rejected = 0
        self._attach_lock = asyncio.Lock()
        self._reattach_tasks: dict[str, asyncio.Task[None]] = {}
        manager.add_ready_listener(self.rebind)

    @property
    def bindings(self) -> dict[str, HandlerBinding]:
        return dict(self._bindings)

    @property
    def stats(self) -> dict[str, int]:
        return {"acked": self._acked, "failed": self._failed, "rejected": self._rejected}

    async def consume(self, queue: str, handler: Handler) -> HandlerBinding:
        """Bind ``handler`` to ``queue`` and start consuming.

        Raises:
            UnknownQueue: ``queue`` is not in the registry.
            DuplicateConsumer: a handler is already bound to ``queue``.
            ChannelUnavailable: the client is not READY; nothing is registered.
        """
        require_known_queue(queue)
        if queue in self._bindings:
            raise DuplicateConsumer(queue)
        if not self._manager.is_ready:
            raise ChannelUnavailable(self._manager.state.value, "consume")

        binding = HandlerBinding(queue=queue, handler=handler)
        # Reserve the slot before awaiting so concurrent calls cannot both bind
        self._bindings[queue] = binding
        try:
            await self._attach(binding)
        except ChannelUnavailable:
            self._bindings.pop(queue, None)
            raise
        logger.info("Consuming from queue %s", queue)
        return binding

    async def rebind(self) -> None:
        """Attach every binding whose channel is gone to a fresh channel."""
        for binding in list(self._bindings.values()):
            if binding.attached:
                continue
            try:
                await self._attach(binding)
            except ChannelUnavailable as exc:
                # Connection dropped again; the next ready transition retries
                logger.warning("Could not re-attach consumer for %s: %s", binding.queue, exc)
                return
            logger.info("Re-attached consumer for %s", binding.queue)

    async def _attach(self, binding: HandlerBinding) -> None:
        async with self._attach_lock:
            if binding.attached:
                return
            channel = await self._manager.open_channel("consume")
            try:
                queue = await declare_queue(channel, binding.queue)
                tag = await queue.consume(lambda msg, b=binding: self._on_message(b, msg), no_ack=False)
            except CHANNEL_ERRORS as exc:
                raise ChannelUnavailable(self._manager.state.value, "consume") from exc
            binding.channel = channel
            binding.consumer_tag = tag
            channel.close_callbacks.add(lambda sender, exc=None, b=binding: self._on_channel_closed(b, sender, exc))

    def _on_channel_closed(self, binding: HandlerBinding, sender: Any, exc: BaseException | None) -> None:
        # Connection-level closes leave READY; rebind() picks those up
        if sender is not binding.channel or not self._manager.is_ready:
            return
        pending = self._reattach_tasks.get(binding.queue)
        if pending is not None and not pending.done():
            return
        logger.warning("Consumer channel for %s closed, re-attaching", binding.queue, extra={"error": repr(exc)})
        self._reattach_tasks[binding.queue] = asyncio.get_running_loop().create_task(self._reattach(binding))

    async def _reattach(self, binding: HandlerBinding) -> None:
        """Re-attach one binding on the live connection, retrying at the reconnect interval."""
        while self._manager.is_ready and not binding.attached:
            try:
                await self._attach(binding)
            except ChannelUnavailable as exc:
                logger.warning("Could not re-attach consumer for %s: %s", binding.queue, exc)
                await asyncio.sleep(self._manager.reconnect_interval_s)
                continue
            logger.info("Re-attached consumer for %s", binding.queue)

    async def _on_message(self, binding: HandlerBinding, message: AbstractIncomingMessage) -> None:
        queue = binding.queue
        try:
            payload = decode_payload(queue, message.body)
        except SerializationError as exc:
            self._rejected += 1
            CONSUMER_MESSAGE_TOTAL.labels(queue=queue, status="rejected").inc()
            logger.error("Dropping undecodable message from %s: %s", queue, exc)
            await self._settle(message.reject(requeue=False), queue, "reject")
            return

        logger.debug("Received from %s", queue, extra={"message_id": message.message_id})
        start_ts = time.perf_counter()
        token = context.attach(extract_context_from_headers(message.headers))
        try:
            with self._tracer.start_as_current_span("consume") as span:
                span.set_attribute("messaging.destination", queue)
                try:
                    await binding.handler(payload)
                except Exception as exc:  # noqa: BLE001
                    span.record_exception(exc)
                    span.set_attribute("error", True)
                    error = HandlerError(queue, exc)
                    self._failed += 1
                    CONSUMER_MESSAGE_TOTAL.labels(queue=queue, status="failed").inc()
                    logger.warning(str(error), exc_info=exc, extra={"message_id": message.message_id})
                    if self._settings.requeue_on_handler_error:
                        await self._settle(message.nack(requeue=True), queue, "nack")
                    return
        finally:
            context.detach(token)
            HANDLER_LATENCY_SECONDS.labels(queue=queue).observe(time.perf_counter() - start_ts)

        self._acked += 1
        CONSUMER_MESSAGE_TOTAL.labels(queue=queue, status="success").inc()
        await self._settle(message.ack(), queue, "ack")

    @staticmethod
    async def _settle(outcome: Awaitable[Any], queue: str, action: str) -> None:
        # The channel may have died under us; the broker redelivers in that case
        try:
            await outcome
        except CHANNEL_ERRORS as exc:
            logger.warning("Could not %s message from %s: %r", action, queue, exc)
