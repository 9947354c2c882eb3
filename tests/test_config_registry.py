import pytest

from eventbus.config import Settings
from eventbus.constants import QUEUES, require_known_queue
from eventbus.errors import UnknownQueue


def test_settings_reconnect_interval_default(monkeypatch):
    # Fixed 5 second interval when env not set
    monkeypatch.delenv("RABBITMQ_RECONNECT_INTERVAL_MS", raising=False)
    s = Settings()
    assert s.reconnect_interval_ms == 5000
    assert s.reconnect_interval_s == 5.0


def test_settings_env_override(monkeypatch):
    monkeypatch.setenv("RABBITMQ_RECONNECT_INTERVAL_MS", "250")
    monkeypatch.setenv("RABBITMQ_PREFETCH", "20")
    monkeypatch.setenv("EVENTBUS_VALIDATE_PAYLOADS", "yes")
    monkeypatch.setenv("RABBITMQ_URL", "amqp://u:p@mq:5672/blog")
    s = Settings()
    assert s.reconnect_interval_s == 0.25
    assert s.prefetch_count == 20
    assert s.validate_payloads is True
    assert s.rabbitmq_url == "amqp://u:p@mq:5672/blog"


def test_settings_defaults_keep_reference_behavior(monkeypatch):
    for name in ("RABBITMQ_PREFETCH", "EVENTBUS_VALIDATE_PAYLOADS", "EVENTBUS_REQUEUE_ON_ERROR"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.prefetch_count == 0
    assert s.validate_payloads is False
    assert s.requeue_on_handler_error is False


def test_registry_is_the_cross_service_contract():
    assert QUEUES == (
        "user.registered",
        "post.created",
        "post.deleted",
        "comment.created",
        "comment.deleted",
    )


def test_require_known_queue():
    assert require_known_queue("comment.deleted") == "comment.deleted"
    with pytest.raises(UnknownQueue, match="user.updated"):
        require_known_queue("user.updated")
