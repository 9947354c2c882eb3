"""
Topology initializer.

- Declares every registry queue as durable (idempotent)

Supports a best-effort mode via ``--best-effort`` or ``INIT_TOPOLOGY_BEST_EFFORT=1``
which skips errors if RabbitMQ is not reachable (useful in CI without a broker).

Examples:
    python -m scripts.init_topology
    python -m scripts.init_topology --best-effort
"""

import argparse
import asyncio
import os

from eventbus.config import Settings
from eventbus.constants import QUEUES
from eventbus.errors import BrokerConnectionError
from eventbus.rabbit import CHANNEL_ERRORS, declare_queues, open_connection


async def main(best_effort: bool) -> None:
    """Declare the registry queues once and exit.

    When ``best_effort`` is True, any connection or declaration error is
    printed and the function returns successfully.
    """
    settings = Settings()
    try:
        connection = await open_connection(settings.rabbitmq_url, settings)
    except BrokerConnectionError as exc:
        if best_effort:
            print(f"[init_topology] Skipping: RabbitMQ not reachable ({exc.error})")
            return
        raise

    async with connection:
        try:
            channel = await connection.channel()
            await declare_queues(channel, QUEUES)
        except CHANNEL_ERRORS as exc:
            if best_effort:
                print(f"[init_topology] Skipping declarations due to error: {exc!r}")
                return
            raise
    print(f"[init_topology] Declared {len(QUEUES)} durable queues: {', '.join(QUEUES)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Declare the durable registry queues")
    parser.add_argument("--best-effort", action="store_true", help="Do not fail if RabbitMQ is unreachable")
    args = parser.parse_args()

    best_effort_env = os.getenv("INIT_TOPOLOGY_BEST_EFFORT", "false").lower() in {"1", "true", "yes"}
    asyncio.run(main(bool(args.best_effort or best_effort_env)))
