"""
Post service broker wiring.

- Connects one BrokerClient for the process (retries in the background)
- Consumes ``comment.created`` / ``comment.deleted`` and keeps per-post comment counts
- Publishes ``post.created`` / ``post.deleted`` after post writes
- Stops on SIGINT/SIGTERM
"""

import asyncio
import logging
import signal
from typing import Any, Dict

from eventbus.client import BrokerClient
from eventbus.config import Settings
from eventbus.constants import (
    QUEUE_COMMENT_CREATED,
    QUEUE_COMMENT_DELETED,
    QUEUE_POST_CREATED,
    QUEUE_POST_DELETED,
)
from eventbus.metrics import start_metrics_server
from eventbus.publisher import PublishReceipt
from eventbus.tracing import start_tracing
from eventbus.utils.logging import setup_logging

logger = logging.getLogger("post_service")


class CommentCounter:
    """In-process stand-in for the post store's ``commentsCount`` column.

    Handlers only touch the counter after the payload is validated, so a bad
    payload raises before any state changes and the message is redelivered.
    """

    def __init__(self) -> None:
        self.counts: Dict[str, int] = {}

    async def on_comment_created(self, payload: dict[str, Any]) -> None:
        post_id = self._post_id(payload)
        self.counts[post_id] = self.counts.get(post_id, 0) + 1

    async def on_comment_deleted(self, payload: dict[str, Any]) -> None:
        post_id = self._post_id(payload)
        self.counts[post_id] = max(self.counts.get(post_id, 0) - 1, 0)

    @staticmethod
    def _post_id(payload: dict[str, Any]) -> str:
        post_id = payload.get("postId") if isinstance(payload, dict) else None
        if not post_id:
            raise ValueError("comment event without postId")
        return str(post_id)


class PostService:
    """Broker side of the post service: comment counters in, post events out."""

    def __init__(self, client: BrokerClient | None = None) -> None:
        self.client = client or BrokerClient()
        self.counter = CommentCounter()
        self._stopping = asyncio.Event()

    async def start(self, url: str | None = None) -> None:
        """Connect, wait until ready, and register the comment handlers."""
        await self.client.connect(url)
        await self.client.wait_ready()
        await self.client.consume(QUEUE_COMMENT_CREATED, self.counter.on_comment_created)
        await self.client.consume(QUEUE_COMMENT_DELETED, self.counter.on_comment_deleted)

    async def post_created(self, post: dict[str, Any]) -> PublishReceipt:
        return await self.client.publish(
            QUEUE_POST_CREATED,
            {
                "postId": post["postId"],
                "title": post["title"],
                "authorId": post["authorId"],
                "authorUsername": post.get("authorUsername"),
                "status": post.get("status", "published"),
            },
        )

    async def post_deleted(self, post_id: str, author_id: str) -> PublishReceipt:
        return await self.client.publish(QUEUE_POST_DELETED, {"postId": post_id, "authorId": author_id})

    async def run(self) -> None:
        await self.start()
        logger.info("Post service consuming comment events")
        await self._stopping.wait()
        await self.client.close()

    def stop(self) -> None:
        """Signal the run loop to stop (used by signal handlers)."""
        self._stopping.set()


async def main() -> None:
    settings = Settings(service_name="post-service")
    setup_logging(settings.log_level)
    start_tracing(settings.service_name)
    try:
        start_metrics_server(settings.metrics_port)
    except OSError:
        logger.warning("Metrics port %s already in use", settings.metrics_port)

    service = PostService(BrokerClient(settings))
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, service.stop)

    await service.run()


if __name__ == "__main__":
    asyncio.run(main())
