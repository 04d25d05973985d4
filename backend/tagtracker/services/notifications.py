"""
Notification Service
====================

Answers the questions the notification endpoints ask:

- "Show me everything my sensors saw" (optionally within a time range)
- "What did THIS sensor see?" / "Where was THIS tag seen?"
- "How many visits did each of my sectors get?"
- "Delete all my notifications"

Every query is scoped to the caller's own sensors or tags. Nothing from
another account ever leaves this class.

Return conventions (the routers turn these into status codes):
    None          -> the sensor/tag isn't yours (or doesn't exist)
    []            -> valid query, nothing matched
    NoSensorsError-> you don't own any sensors at all

Author: Tag Tracker Team
"""

import logging
from typing import Optional

from tagtracker.models import And, Equals, Notification, Or, Predicate, SectorVisits, where
from tagtracker.services.store import NOTIFICATIONS, SENSORS, TAGS, DocumentStore
from tagtracker.services.visits import NoSensorsError, aggregate_visits
from tagtracker.utils.timestamps import TimestampFilter

logger = logging.getLogger(__name__)


BY_TIME = [("timestamp", 1)]


class NotificationService:

    def __init__(self, store: DocumentStore):
        self.store = store

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def owned_sensors(self, owner: str) -> list[dict]:
        """All sensor documents belonging to an owner."""
        return await self.store.find(SENSORS, where(owner=owner))

    async def _require_sensors(self, owner: str) -> list[dict]:
        sensors = await self.owned_sensors(owner)
        if not sensors:
            raise NoSensorsError(owner)
        return sensors

    @staticmethod
    def _any_sensor(sensors: list[dict]) -> Predicate:
        return Or([Equals("sensor_id", sensor["sensor_id"]) for sensor in sensors])

    @staticmethod
    def _with_range(base: Predicate, timestamps: Optional[TimestampFilter]) -> Predicate:
        if timestamps is None:
            return base
        return And([base, timestamps.to_predicate("timestamp")])

    async def _find(self, predicate: Predicate) -> list[Notification]:
        docs = await self.store.find(NOTIFICATIONS, predicate, sort=BY_TIME)
        return [Notification(**doc) for doc in docs]

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_for_owner(
        self,
        owner: str,
        timestamps: Optional[TimestampFilter] = None,
    ) -> list[Notification]:
        """
        Notifications from any of the owner's sensors.

        Raises:
            NoSensorsError: if the owner has no sensors
        """
        sensors = await self._require_sensors(owner)
        return await self._find(self._with_range(self._any_sensor(sensors), timestamps))

    async def list_for_sensor(
        self,
        owner: str,
        sensor_id: str,
        timestamps: Optional[TimestampFilter] = None,
    ) -> Optional[list[Notification]]:
        """Notifications from one sensor, or None if the owner doesn't have it."""
        sensor = await self.store.find_one(SENSORS, where(sensor_id=sensor_id, owner=owner))
        if sensor is None:
            return None
        return await self._find(self._with_range(Equals("sensor_id", sensor_id), timestamps))

    async def list_for_tag(
        self,
        owner: str,
        tag_id: str,
        timestamps: Optional[TimestampFilter] = None,
    ) -> Optional[list[Notification]]:
        """
        Notifications of one tag, or None if the owner doesn't have it.

        Only the owner's sensors are considered. The same tag_id can exist
        under several accounts, and their detections stay theirs.
        """
        tag = await self.store.find_one(TAGS, where(tag_id=tag_id, owner=owner))
        if tag is None:
            return None

        sensors = await self.owned_sensors(owner)
        if not sensors:
            return []

        base = And([Equals("tag_id", tag_id), self._any_sensor(sensors)])
        return await self._find(self._with_range(base, timestamps))

    async def visit_report(self, owner: str, timestamps: TimestampFilter) -> list[SectorVisits]:
        """
        Visits per sector within a time window.

        Returns:
            The tally, or an empty list when no notification matched

        Raises:
            NoSensorsError: if the owner has no sensors
        """
        sensors = await self._require_sensors(owner)
        sector_by_sensor = {sensor["sensor_id"]: sensor["sector_id"] for sensor in sensors}

        notifications = await self._find(self._with_range(self._any_sensor(sensors), timestamps))
        if not notifications:
            return []

        # Stable: equal timestamps keep the store order
        notifications = sorted(notifications, key=lambda n: n.timestamp)
        visits = aggregate_visits(sector_by_sensor, notifications)
        logger.debug(f"Visit report for {owner}: {len(notifications)} notifications, {len(visits)} sectors")
        return visits

    # =========================================================================
    # DELETION
    # =========================================================================

    async def delete_for_owner(self, owner: str) -> int:
        """
        Delete every notification from the owner's sensors.

        Returns:
            How many notifications were deleted

        Raises:
            NoSensorsError: if the owner has no sensors
        """
        sensors = await self._require_sensors(owner)
        result = await self.store.delete_many(NOTIFICATIONS, self._any_sensor(sensors))
        logger.info(f"Deleted {result.deleted_count} notifications for {owner}")
        return result.deleted_count
