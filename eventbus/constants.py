"""Queue registry and connection states shared by every participating service.

The registry is a closed enumeration: publishing to or consuming from any
other name is a caller error (``UnknownQueue``). All queues are durable and are
declared idempotently every time a connection becomes ready; this package never
deletes them.

Queues:
- ``user.registered``: auth service, after a new account is stored.
- ``post.created``: post service, after a post is stored.
- ``post.deleted``: post service, after a post is removed.
- ``comment.created``: comment writes; the post service bumps its counter.
- ``comment.deleted``: comment removals; the post service decrements it.

Connection states (``ConnectionState``):
- ``DISCONNECTED``: initial state, and the state after an explicit close.
- ``CONNECTING``: an attempt to open connection and channels is in flight.
- ``READY``: queues declared; publish/consume are allowed.
- ``RECONNECTING``: the link was lost; a retry is scheduled.
"""
from __future__ import annotations

import enum

from eventbus.errors import UnknownQueue


QUEUE_USER_REGISTERED = "user.registered"
QUEUE_POST_CREATED = "post.created"
QUEUE_POST_DELETED = "post.deleted"
QUEUE_COMMENT_CREATED = "comment.created"
QUEUE_COMMENT_DELETED = "comment.deleted"

QUEUES: tuple[str, ...] = (
    QUEUE_USER_REGISTERED,
    QUEUE_POST_CREATED,
    QUEUE_POST_DELETED,
    QUEUE_COMMENT_CREATED,
    QUEUE_COMMENT_DELETED,
)

CONTENT_TYPE_JSON = "application/json"


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    RECONNECTING = "reconnecting"


def require_known_queue(name: str) -> str:
    """Return ``name`` if it belongs to the registry, else raise ``UnknownQueue``.

    >>> require_known_queue("post.created")
    'post.created'
    """
    if name not in QUEUES:
        raise UnknownQueue(name)
    return name
