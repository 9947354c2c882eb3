"""
Exception classes raised by the broker client.
Connection failures are handled inside the client; everything else reaches the caller.
"""
from __future__ import annotations


class BrokerError(Exception):
    """Base exception for broker client errors."""


class BrokerConnectionError(BrokerError):
    """Raised when the broker cannot be reached or the connection setup fails.

    Only the connection manager sees this one; it logs it and schedules a retry.
    """

    def __init__(self, url: str, error: BaseException | str):
        self.url = url
        self.error = error
        super().__init__(f"Failed to connect to broker at '{url}': {error}")


class ChannelUnavailable(BrokerError):
    """Raised when publish or consume is attempted while the client is not ready."""

    def __init__(self, state: str, operation: str = "operation"):
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation}: channel unavailable (state={state})")


class UnknownQueue(BrokerError):
    """Raised when a queue name is not part of the registry."""

    def __init__(self, queue: str):
        self.queue = queue
        super().__init__(f"Queue '{queue}' is not in the queue registry")


class DuplicateConsumer(BrokerError):
    """Raised when a second handler is registered for the same queue."""

    def __init__(self, queue: str):
        self.queue = queue
        super().__init__(f"A handler is already registered for queue '{queue}'")


class HandlerError(BrokerError):
    """Wraps an exception raised by a consumer handler.

    Never propagated out of the delivery loop; the message is left unacknowledged.
    """

    def __init__(self, queue: str, error: BaseException):
        self.queue = queue
        self.error = error
        super().__init__(f"Handler for '{queue}' failed: {error.__class__.__name__}: {error}")


class SerializationError(BrokerError):
    """Raised when a payload cannot be encoded to or decoded from JSON."""

    def __init__(self, queue: str, error: BaseException | str):
        self.queue = queue
        self.error = error
        super().__init__(f"Cannot serialize payload for '{queue}': {error}")
