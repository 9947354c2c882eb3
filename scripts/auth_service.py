"""
Auth service broker wiring.

Publishes ``user.registered`` after an account is stored. Run as a script to
emit one event for the user given on the command line.

Examples:
    python -m scripts.auth_service --user-id u1 --username alice --email a@x.com
"""

import argparse
import asyncio
import logging
from typing import Any

from eventbus.client import BrokerClient
from eventbus.config import Settings
from eventbus.constants import QUEUE_USER_REGISTERED
from eventbus.publisher import PublishReceipt
from eventbus.tracing import start_tracing
from eventbus.utils.logging import setup_logging

logger = logging.getLogger("auth_service")


def build_user_registered(user: dict[str, Any]) -> dict[str, Any]:
    """Return the ``user.registered`` payload for a stored user record."""
    return {
        "userId": str(user["userId"]),
        "username": user["username"],
        "email": user["email"],
    }


async def user_registered(client: BrokerClient, user: dict[str, Any]) -> PublishReceipt:
    return await client.publish(QUEUE_USER_REGISTERED, build_user_registered(user))


async def main(user: dict[str, Any], timeout: float) -> None:
    settings = Settings(service_name="auth-service")
    setup_logging(settings.log_level)
    start_tracing(settings.service_name)
    client = BrokerClient(settings)
    try:
        await client.connect(settings.rabbitmq_url)
        await client.wait_ready(timeout)
        receipt = await user_registered(client, user)
        logger.info("user.registered published", extra={"message_id": receipt.message_id})
    finally:
        await client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Publish a user.registered event")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for the broker")
    args = parser.parse_args()
    asyncio.run(main({"userId": args.user_id, "username": args.username, "email": args.email}, args.timeout))
