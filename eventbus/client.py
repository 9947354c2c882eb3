"""Broker client facade used by the services.

One ``BrokerClient`` per service process. It composes the connection manager,
publisher and consumer registrar around a single ``Settings`` instance and
exposes the three operations the CRUD handlers need::

    client = BrokerClient()
    await client.connect(settings.rabbitmq_url)
    await client.consume(QUEUE_COMMENT_CREATED, on_comment_created)
    await client.publish(QUEUE_POST_CREATED, {"postId": "p1", ...})

Connection failures are retried in the background and never raised; publish
and consume raise typed ``eventbus.errors`` exceptions.
"""
from __future__ import annotations

from typing import Any

from eventbus.config import Settings
from eventbus.connection import ConnectFn, ConnectionManager
from eventbus.constants import ConnectionState
from eventbus.consumer import ConsumerRegistrar, Handler, HandlerBinding
from eventbus.publisher import Publisher, PublishReceipt


class BrokerClient:
    def __init__(self, settings: Settings | None = None, connect_fn: ConnectFn | None = None) -> None:
        self.settings = settings or Settings()
        self.connection = ConnectionManager(self.settings, connect_fn=connect_fn)
        self.publisher = Publisher(self.connection, self.settings)
        self.consumers = ConsumerRegistrar(self.connection, self.settings)

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def is_ready(self) -> bool:
        return self.connection.is_ready

    async def connect(self, url: str | None = None) -> bool:
        """Connect (or schedule retries). Returns True when READY."""
        return await self.connection.connect(url)

    async def wait_ready(self, timeout: float | None = None) -> None:
        await self.connection.wait_ready(timeout)

    async def publish(self, queue: str, payload: Any) -> PublishReceipt:
        return await self.publisher.publish(queue, payload)

    async def consume(self, queue: str, handler: Handler) -> HandlerBinding:
        return await self.consumers.consume(queue, handler)

    async def close(self) -> None:
        await self.connection.close()

    async def __aenter__(self) -> "BrokerClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
