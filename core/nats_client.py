"""
NATS JetStream Client for the lifecycle services

Publishes domain events with nats-py. Subjects are the event type values
(e.g. "campaign.started"); each subject prefix maps to one stream.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import nats
from nats.aio.client import Client as NATSClient
from nats.js import JetStreamContext

from core.config import InfraConfig
from core.json_codec import ExtendedJSONEncoder

logger = logging.getLogger(__name__)


class ServiceSource(Enum):
    """Event sources"""

    CAMPAIGN_SERVICE = "campaign_service"
    CERTIFICATE_SERVICE = "certificate_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: Enum,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }


class NATSEventBus:
    """NATS JetStream event bus (publish side)"""

    STREAMS = {
        "campaign": "campaign-stream",
        "certificate": "certificate-stream",
    }

    def __init__(self, service_name: str, config: Optional[InfraConfig] = None):
        self.service_name = service_name
        self.config = config or InfraConfig.from_env()
        self.url = self.config.nats_server_url

        self._nc: Optional[NATSClient] = None
        self._js: Optional[JetStreamContext] = None
        self._streams_ready = set()

        logger.info(f"NATS EventBus initialized: {self.url}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(servers=[self.url], name=self.service_name)
            self._js = self._nc.jetstream()
            logger.info(f"Connected to NATS as {self.service_name}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to its JetStream stream.

        The stream for the event's subject prefix is created on first use.
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            stream_name = self._get_stream_name_for_event(event.type)
            await self._ensure_stream(stream_name, event.type.split('.')[0])

            data = json.dumps(event.to_dict(), cls=ExtendedJSONEncoder).encode()
            ack = await self._js.publish(event.type, data, stream=stream_name)
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True

        except Exception as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def _ensure_stream(self, stream_name: str, subject_prefix: str) -> None:
        if stream_name in self._streams_ready:
            return
        try:
            await self._js.add_stream(name=stream_name, subjects=[f"{subject_prefix}.>"])
        except Exception as e:
            logger.debug(f"Stream creation note: {e}")
        self._streams_ready.add(stream_name)

    def _get_stream_name_for_event(self, event_type: str) -> str:
        prefix = event_type.split('.')[0]
        return self.STREAMS.get(prefix, f"{prefix}-stream")

    async def close(self):
        """Drain and close the NATS connection"""
        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        return self._nc is not None and self._nc.is_connected


async def get_event_bus(
    service_name: str,
    config: Optional[InfraConfig] = None,
) -> Optional[NATSEventBus]:
    """
    Create and connect an event bus.

    Returns None when NATS is disabled or unreachable; services then run
    without publishing events.
    """
    config = config or InfraConfig.from_env()
    if not config.nats_enabled:
        logger.info(f"NATS disabled for {service_name}")
        return None

    event_bus = NATSEventBus(service_name=service_name, config=config)
    try:
        await event_bus.connect()
    except Exception as e:
        logger.warning(f"Event bus unavailable for {service_name}, continuing without events: {e}")
        return None
    return event_bus


__all__ = ["Event", "NATSEventBus", "ServiceSource", "get_event_bus"]
