"""
Sensors API Router
==================

Register sensors and place them on a map/sector.

Every endpoint needs an Authorization header; you only ever see and
change your own sensors.

ALL ENDPOINTS:
-------------
GET    /sensors/             - List your sensors
GET    /sensors/{sensor_id}  - Get one sensor
POST   /sensors/             - Add a sensor
PATCH  /sensors/{sensor_id}  - Move/rename a sensor
DELETE /sensors/{sensor_id}  - Delete a sensor

STATUS CODES:
------------
200/201 - Worked
204     - Nothing to show
400     - A required field is missing
401     - Missing or unknown token
406     - Referenced map/sector/sensor doesn't exist, or nothing changed

This module also owns the shared dependencies (store, caller identity)
that the other routers use.

Author: Tag Tracker Team
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from typing import Optional

from tagtracker.models import (
    AddSensorRequest,
    MessageResponse,
    Sensor,
    SensorListResponse,
    UpdateSensorRequest,
)
from tagtracker.services import DocumentStore, Owner, SensorManager, TokenAuthenticator
from tagtracker.utils import is_empty


# Create the router - this groups all our sensor endpoints together
router = APIRouter(prefix="/sensors", tags=["sensors"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

_store = None  # This gets set when the app starts


class Unauthenticated(Exception):
    """Raised when a request has no valid token. Answered with a bare 401."""


def set_store(store: DocumentStore):
    """Called when the app starts to hand the routers their store."""
    global _store
    _store = store


def get_store() -> DocumentStore:
    """Get the store for use in endpoints."""
    if _store is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _store


async def get_owner(
    authorization: Optional[str] = Header(None),
    store: DocumentStore = Depends(get_store),
) -> Owner:
    """Resolve the caller from the Authorization header."""
    owner = await TokenAuthenticator(store).authenticate(authorization)
    if owner is None:
        raise Unauthenticated()
    return owner


def get_sensor_manager(store: DocumentStore = Depends(get_store)) -> SensorManager:
    return SensorManager(store)


# =============================================================================
# SENSOR ENDPOINTS
# =============================================================================

@router.get("/", response_model=SensorListResponse)
async def get_all_sensors(
    owner: Owner = Depends(get_owner),
    manager: SensorManager = Depends(get_sensor_manager),
):
    """Get all your sensors."""
    sensors = await manager.get_all_sensors(owner.owner)
    if not sensors:
        return Response(status_code=204)
    return SensorListResponse(response=sensors)


@router.get("/{sensor_id}", response_model=SensorListResponse)
async def get_sensor(
    sensor_id: str,
    owner: Owner = Depends(get_owner),
    manager: SensorManager = Depends(get_sensor_manager),
):
    """
    Get one of your sensors.

    Comes back as a one-item list, same shape as the list endpoint.
    """
    sensor = await manager.get_sensor(owner.owner, sensor_id)
    if sensor is None:
        return Response(status_code=204)
    return SensorListResponse(response=[sensor])


@router.post("/", response_model=MessageResponse, status_code=201)
async def add_sensor(
    request: AddSensorRequest,
    owner: Owner = Depends(get_owner),
    manager: SensorManager = Depends(get_sensor_manager),
):
    """
    Add a new sensor.

    Send us:
    - sensor_id: The id the device publishes on MQTT (must be unused)
    - map_id / sector_id: Where it is (both must already exist for you)
    - name, pos_x, pos_y: Optional details
    """
    if is_empty(request.sensor_id):
        raise HTTPException(status_code=400, detail="sensor_id is empty!")
    if is_empty(request.map_id):
        raise HTTPException(status_code=400, detail="map_id is empty!")
    if is_empty(request.sector_id):
        raise HTTPException(status_code=400, detail="sector_id is empty!")

    await _check_placement(manager, owner.owner, request.map_id, request.sector_id)

    if await manager.sensor_id_taken(request.sensor_id):
        raise HTTPException(status_code=406, detail=f"Sensor '{request.sensor_id}' is already in database!")

    sensor = await manager.add_sensor(owner.owner, request)
    if sensor is None:
        raise HTTPException(
            status_code=406,
            detail=f"Sensor '{request.sensor_id}' failed to insert, contact an admin for help",
        )
    return MessageResponse(message=f"Sensor '{sensor.sensor_id}' inserted!")


@router.patch("/{sensor_id}", response_model=MessageResponse)
async def update_sensor(
    sensor_id: str,
    request: UpdateSensorRequest,
    owner: Owner = Depends(get_owner),
    manager: SensorManager = Depends(get_sensor_manager),
):
    """
    Move or rename one of your sensors.

    map_id and sector_id are required, so a sensor always ends up in a
    sector that exists.
    """
    if is_empty(request.map_id):
        raise HTTPException(status_code=400, detail="map_id is empty!")
    if is_empty(request.sector_id):
        raise HTTPException(status_code=400, detail="sector_id is empty!")

    await _check_placement(manager, owner.owner, request.map_id, request.sector_id)

    if not await manager.update_sensor(owner.owner, sensor_id, request):
        raise HTTPException(
            status_code=406,
            detail=f"Sensor '{sensor_id}' failed to update, verify if the id is correct and try again",
        )
    return MessageResponse(message=f"Sensor '{sensor_id}' updated!")


@router.delete("/{sensor_id}", response_model=MessageResponse)
async def delete_sensor(
    sensor_id: str,
    owner: Owner = Depends(get_owner),
    manager: SensorManager = Depends(get_sensor_manager),
):
    """
    Delete one of your sensors.

    There's no undo! Its past notifications are kept.
    """
    if not await manager.delete_sensor(owner.owner, sensor_id):
        raise HTTPException(
            status_code=406,
            detail=f"Sensor '{sensor_id}' failed to delete, verify if the id is correct and try again",
        )
    return MessageResponse(message=f"Sensor '{sensor_id}' deleted!")


async def _check_placement(manager: SensorManager, owner: str, map_id: str, sector_id: str):
    if not await manager.map_exists(owner, map_id):
        raise HTTPException(status_code=406, detail=f"Map '{map_id}' not found!")
    if not await manager.sector_exists(owner, map_id, sector_id):
        raise HTTPException(status_code=406, detail=f"Sector '{sector_id}' for Map '{map_id}' not found!")
