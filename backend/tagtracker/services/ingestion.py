"""
Notification Ingestion
======================

Turns MQTT messages from the sensors into stored notifications.

THE DATA FLOW:
-------------
    Sensor publishes {"tag_id": "...", "sensor_id": "..."}
            |
            | MQTT (see broker.py)
            v
    [Parse + validate JSON]       bad JSON / missing ids -> logged, dropped
            |
            v
    [Look up sensor_id]           unknown sensor -> logged, dropped
            |
            v
    [Make sure the tag exists for the sensor's owner]
            |
            v
    [Store notification with OUR timestamp]

Nothing is ever sent back to the sensor, and a dropped message is gone
for good (no retries, no dead-letter queue).

KNOWN HAZARD:
------------
Tag creation is "look, then insert". Two messages for the same brand
new tag arriving at the same time can both miss the lookup and create
two tag rows. Give the tags collection a unique (tag_id, owner) index
if that matters.

Author: Tag Tracker Team
"""

import json
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from tagtracker.models import BrokerMessage, Notification, where
from tagtracker.services.store import NOTIFICATIONS, SENSORS, TAGS, DocumentStore

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class NotificationIngestor:
    """
    Stores notifications coming in from the broker.

    HOW TO USE:
    ----------
    ingestor = NotificationIngestor(store)
    notification = await ingestor.handle_message("tags/detections", b'{"tag_id": "t1", "sensor_id": "s1"}')
    if notification is None:
        print("Message was dropped (see logs)")
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_millis):
        """
        Args:
            store: Where sensors, tags and notifications live
            clock: Returns "now" in epoch milliseconds (swap it out in tests)
        """
        self.store = store
        self.clock = clock

    @staticmethod
    def parse_message(payload: bytes) -> Optional[BrokerMessage]:
        """Decode a raw MQTT payload. Returns None if it isn't a valid detection."""
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Body from message is not JSON: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Body from message may be in the wrong format: {data!r}")
            return None

        try:
            return BrokerMessage(**data)
        except ValidationError as e:
            logger.warning(f"Body from message may be in the wrong format: {data!r} ({e.error_count()} errors)")
            return None

    async def handle_message(self, topic: str, payload: bytes) -> Optional[Notification]:
        """
        Process one broker message.

        Never raises; problems are logged and the message is dropped.

        Returns:
            The stored Notification, or None if the message was dropped
        """
        logger.info(f"Message from topic: {topic}")

        message = self.parse_message(payload)
        if message is None:
            return None

        notification = Notification(
            tag_id=message.tag_id,
            sensor_id=message.sensor_id,
            timestamp=self.clock(),
        )

        try:
            return await self.ingest(notification)
        except Exception as e:
            logger.error(f"Failed to store notification {notification.model_dump()}: {e}", exc_info=True)
            return None

    async def ingest(self, notification: Notification) -> Optional[Notification]:
        """
        Store a notification if its sensor is known.

        Sensor lookup is store-wide: the sensor decides which owner the
        tag and notification belong to.
        """
        sensor = await self.store.find_one(SENSORS, where(sensor_id=notification.sensor_id))
        if sensor is None:
            logger.info(f"No sensor '{notification.sensor_id}' found, dropping notification")
            return None

        await self.ensure_tag(notification.tag_id, sensor["owner"])
        await self.store.insert(NOTIFICATIONS, notification.model_dump())

        logger.debug(f"Stored notification: tag={notification.tag_id} sensor={notification.sensor_id}")
        return notification

    async def ensure_tag(self, tag_id: str, owner: str) -> bool:
        """
        Create the tag for this owner unless it already exists.

        New tags are named after their id.

        Returns:
            True if a tag row was created
        """
        existing = await self.store.find_one(TAGS, where(tag_id=tag_id, owner=owner))
        if existing is not None:
            return False

        await self.store.insert(TAGS, {"tag_id": tag_id, "name": tag_id, "owner": owner})
        logger.info(f"Created tag '{tag_id}' for {owner}")
        return True
