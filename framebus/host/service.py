"""Host service - serves the frame over Redis Streams and exposes the HTTP API.

This service:
1. Reads frame -> host envelopes from the inbound stream (consumer group)
2. Routes them through the HostBus against the entity store
3. Appends replies and pushes to the outbound stream
4. Serves /health, /status and /push

Store: PostgreSQL when a DSN is configured, in-memory otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import os

import uvicorn

from framebus.api.main import create_app
from framebus.core.channel import RedisStreamChannel
from framebus.core.settings import Settings, load_settings
from framebus.host.bus import HostBus
from framebus.store.memory import InMemoryEntityStore
from framebus.store.postgres import PostgresEntityStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings):
    """Create the appropriate entity store based on settings."""
    if settings.postgres_dsn:
        logger.info("Using PostgreSQL entity store")
        return PostgresEntityStore(settings.postgres_dsn)
    logger.info("Using in-memory entity store (dev mode)")
    return InMemoryEntityStore()


async def serve(settings: Settings) -> None:
    channel = RedisStreamChannel(
        settings.redis_url,
        inbound_stream=settings.inbound_stream,
        outbound_stream=settings.outbound_stream,
        group=settings.consumer_group,
        consumer=os.getenv("HOSTNAME", "framebus-host-1"),
    )
    bus = HostBus(channel, store=create_store(settings))
    api = uvicorn.Server(
        uvicorn.Config(create_app(bus), host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    )

    logger.info(f"Redis URL: {settings.redis_url}")
    logger.info(f"Consuming {settings.inbound_stream}, replying on {settings.outbound_stream}")
    try:
        await asyncio.gather(channel.run(), api.serve())
    finally:
        await bus.drain()
        await channel.close()


def main() -> None:
    """Run the host service."""
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    logger.info("Starting framebus host service...")
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down framebus host service...")


if __name__ == "__main__":
    main()
