"""
Sensor Manager
==============

Registers sensors and keeps each account's sensors to itself.

WHAT IT DOES:
------------
1. Lists / gets the sensors of an owner
2. Checks that a map and a sector (of that map) exist for the owner
3. Adds, updates and deletes sensors

A sensor_id is unique across ALL accounts, since that's the id the
device publishes on MQTT and ingestion looks it up store-wide.

Author: Tag Tracker Team
"""

import logging
from typing import Optional

from tagtracker.models import AddSensorRequest, Sensor, UpdateSensorRequest, where
from tagtracker.services.store import MAPS, SECTORS, SENSORS, DocumentStore

logger = logging.getLogger(__name__)


class SensorManager:
    """
    The central manager for sensors.

    Validation order is up to the caller (the router); every method here
    does exactly one thing.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    # =========================================================================
    # GETTING SENSORS
    # =========================================================================

    async def get_all_sensors(self, owner: str) -> list[Sensor]:
        docs = await self.store.find(SENSORS, where(owner=owner))
        return [Sensor(**doc) for doc in docs]

    async def get_sensor(self, owner: str, sensor_id: str) -> Optional[Sensor]:
        doc = await self.store.find_one(SENSORS, where(sensor_id=sensor_id, owner=owner))
        return Sensor(**doc) if doc else None

    async def sensor_id_taken(self, sensor_id: str) -> bool:
        """Is this sensor_id registered by anyone?"""
        return await self.store.find_one(SENSORS, where(sensor_id=sensor_id)) is not None

    # =========================================================================
    # REFERENCE CHECKS
    # =========================================================================

    async def map_exists(self, owner: str, map_id: str) -> bool:
        return await self.store.find_one(MAPS, where(map_id=map_id, owner=owner)) is not None

    async def sector_exists(self, owner: str, map_id: str, sector_id: str) -> bool:
        predicate = where(sector_id=sector_id, map_id=map_id, owner=owner)
        return await self.store.find_one(SECTORS, predicate) is not None

    # =========================================================================
    # CHANGING SENSORS
    # =========================================================================

    async def add_sensor(self, owner: str, request: AddSensorRequest) -> Optional[Sensor]:
        """
        Store a new sensor for the owner.

        Returns:
            The stored Sensor, or None if the store didn't insert it
        """
        sensor = Sensor(owner=owner, **request.model_dump())
        result = await self.store.insert(SENSORS, sensor.model_dump())
        if result.inserted_count == 0:
            logger.error(f"Sensor '{sensor.sensor_id}' was not inserted")
            return None

        logger.info(f"Sensor '{sensor.sensor_id}' added for {owner} (sector: {sensor.sector_id})")
        return sensor

    async def update_sensor(self, owner: str, sensor_id: str, request: UpdateSensorRequest) -> bool:
        """
        Update name/position/map/sector of an owned sensor.

        Only fields present in the request are written.

        Returns:
            True if the sensor was found
        """
        changes = request.model_dump(exclude_unset=True)
        result = await self.store.update(SENSORS, where(sensor_id=sensor_id, owner=owner), changes)
        if result.matched_count == 0:
            return False

        logger.info(f"Sensor '{sensor_id}' updated ({', '.join(sorted(changes))})")
        return True

    async def delete_sensor(self, owner: str, sensor_id: str) -> bool:
        """Delete an owned sensor. Its notifications stay where they are."""
        result = await self.store.delete_many(SENSORS, where(sensor_id=sensor_id, owner=owner))
        if result.deleted_count == 0:
            return False

        logger.info(f"Sensor '{sensor_id}' deleted")
        return True
