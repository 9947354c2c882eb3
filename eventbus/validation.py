"""Pydantic models for the per-queue payload contracts.

Payload shape is a convention between producer and consumer code; nothing on
the wire carries a schema version. These models write that convention down so
a service can opt in to checking its outbound payloads
(``EVENTBUS_VALIDATE_PAYLOADS=1``). Extra fields are allowed everywhere.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from eventbus.constants import (
    QUEUE_COMMENT_CREATED,
    QUEUE_COMMENT_DELETED,
    QUEUE_POST_CREATED,
    QUEUE_POST_DELETED,
    QUEUE_USER_REGISTERED,
    require_known_queue,
)
from eventbus.errors import SerializationError


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class UserRegistered(_Payload):
    """Published by the auth service once an account is stored."""
    userId: str
    username: str
    email: str


class PostCreated(_Payload):
    postId: str
    title: str
    authorId: str
    authorUsername: Optional[str] = None
    status: Optional[str] = None


class PostDeleted(_Payload):
    postId: str
    authorId: str


class CommentCreated(_Payload):
    postId: str


class CommentDeleted(_Payload):
    postId: str


PAYLOAD_MODELS: dict[str, type[_Payload]] = {
    QUEUE_USER_REGISTERED: UserRegistered,
    QUEUE_POST_CREATED: PostCreated,
    QUEUE_POST_DELETED: PostDeleted,
    QUEUE_COMMENT_CREATED: CommentCreated,
    QUEUE_COMMENT_DELETED: CommentDeleted,
}


def validate_payload(queue: str, payload: Any) -> None:
    """Check ``payload`` against the model registered for ``queue``.

    Raises ``UnknownQueue`` for names outside the registry and
    ``SerializationError`` (wrapping the pydantic error) for a bad shape.
    The payload itself is never modified.
    """
    model = PAYLOAD_MODELS[require_known_queue(queue)]
    try:
        model.model_validate(payload)
    except ValidationError as exc:
        raise SerializationError(queue, exc) from exc


def export_payload_json_schemas() -> dict[str, dict[str, Any]]:
    """Return the JSON Schema of every queue payload, keyed by queue name."""
    return {queue: model.model_json_schema() for queue, model in PAYLOAD_MODELS.items()}
