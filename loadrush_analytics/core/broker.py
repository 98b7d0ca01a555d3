"""
Kafka Connection

Async Kafka client for the analytics service:
- consumes record change events ({"collection": ..., "docId": ...})
- publishes insight summaries as JSON
"""

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer

from loadrush_analytics.core.logging import get_logger

logger = get_logger("core.broker", labels={"component": "broker"})

Handler = Callable[[dict], Awaitable[Any]]


class StartFrom(Enum):
    """Where a new consumer group starts reading."""
    EARLIEST = "earliest"
    LATEST = "latest"
    COMMITTED = "committed"


def encode(value: dict) -> bytes:
    # Summaries carry datetimes; str() gives their ISO form
    return json.dumps(value, default=str, ensure_ascii=False).encode("utf-8")


def decode(raw: Optional[bytes]) -> Optional[dict]:
    """Change events are JSON objects. Anything else decodes to None."""
    if raw is None:
        return None
    try:
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return value if isinstance(value, dict) else None


class Broker:
    def __init__(self, bootstrap_servers: str):
        self.servers = bootstrap_servers
        self.consumer: Optional[AIOKafkaConsumer] = None
        self.producer: Optional[AIOKafkaProducer] = None
        self._task: Optional[asyncio.Task] = None

    async def connect_producer(self):
        self.producer = AIOKafkaProducer(bootstrap_servers=self.servers, value_serializer=encode)
        await self.producer.start()
        logger.info(f"Producer connected to {self.servers}")

    async def connect_consumer(self, topic: str, group_id: str, start_from: StartFrom = StartFrom.COMMITTED):
        """
        COMMITTED resumes the group's offsets and falls back to the start of
        the topic for a brand-new group.
        """
        offset_reset = "earliest" if start_from is StartFrom.COMMITTED else start_from.value
        self.consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=self.servers,
            group_id=group_id,
            auto_offset_reset=offset_reset,
            enable_auto_commit=True,
        )
        await self.consumer.start()
        logger.info(f"Consumer joined {group_id} on {topic}", extra={"labels": {"topic": topic}})

    async def consume(self, handler: Handler):
        """Feed every decodable message to handler until cancelled."""
        async for msg in self.consumer:
            event = decode(msg.value)
            if event is None:
                logger.warning(f"Skipping malformed message at {msg.topic}:{msg.partition}:{msg.offset}",
                               extra={"labels": {"topic": msg.topic}})
                continue
            try:
                await handler(event)
            except Exception as e:
                # One bad event must not stop the consumer
                logger.error(f"Error handling message: {e}", extra={"labels": {"topic": msg.topic}})

    async def listen(self, handler: Handler):
        """Start consume() in the background and return immediately."""
        self._task = asyncio.get_running_loop().create_task(self.consume(handler))

    async def publish(self, topic: str, value: dict, key: Optional[str] = None):
        key_bytes = key.encode("utf-8") if key else None
        await self.producer.send_and_wait(topic, value=value, key=key_bytes)

    async def disconnect(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self.consumer:
            await self.consumer.stop()
            self.consumer = None
        if self.producer:
            await self.producer.stop()
            self.producer = None
