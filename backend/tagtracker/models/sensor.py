"""
Sensor Models
=============
Pydantic models for sensor data validation and serialization.

- Request models: What the frontend sends to the backend
- Response models: What the backend returns to the frontend

A sensor sits at a position on a map and belongs to exactly one sector
of that map. Every notification is pinned to a sector through its sensor.

Author: Tag Tracker Team
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# =============================================================================
# STORED MODEL
# =============================================================================

class Sensor(BaseModel):
    """
    A registered sensor.

    Fields:
        sensor_id: Globally unique identifier (the id the device publishes)
        name: Human-readable name
        pos_x, pos_y: Position on the map
        map_id: Map the sensor is placed on
        sector_id: Sector of that map the sensor belongs to
        owner: Account that owns the sensor
    """
    model_config = ConfigDict(extra="ignore")

    sensor_id: str = Field(..., description="Unique sensor identifier")
    name: Optional[str] = Field(None, description="Human-readable name")
    pos_x: Optional[float] = Field(None, description="X position on the map")
    pos_y: Optional[float] = Field(None, description="Y position on the map")
    map_id: str = Field(..., description="Map the sensor is on")
    sector_id: str = Field(..., description="Sector the sensor belongs to")
    owner: str = Field(..., description="Owning account")


# =============================================================================
# REQUEST MODELS - What frontend sends to backend
# =============================================================================

class AddSensorRequest(BaseModel):
    """
    Request body for registering a sensor.

    Fields are optional at the schema level so that a missing id comes
    back as a 400 with a readable message instead of a 422.

    Example Request:
        POST /sensors/
        {
            "sensor_id": "door-1",
            "name": "Front Door",
            "pos_x": 12.5,
            "pos_y": 3.0,
            "map_id": "floor-1",
            "sector_id": "lobby"
        }
    """
    sensor_id: Optional[str] = Field(None, description="Unique sensor identifier")
    name: Optional[str] = Field(None, description="Human-readable name")
    pos_x: Optional[float] = Field(None, description="X position on the map")
    pos_y: Optional[float] = Field(None, description="Y position on the map")
    map_id: Optional[str] = Field(None, description="Map the sensor is on")
    sector_id: Optional[str] = Field(None, description="Sector the sensor belongs to")


class UpdateSensorRequest(BaseModel):
    """
    Request body for updating a sensor.

    The sensor id comes from the URL and can't be changed. map_id and
    sector_id are required. name, pos_x and pos_y are only written when
    they are in the body; leave one out to keep the stored value.
    """
    name: Optional[str] = Field(None, description="New name")
    pos_x: Optional[float] = Field(None, description="New X position")
    pos_y: Optional[float] = Field(None, description="New Y position")
    map_id: Optional[str] = Field(None, description="Map the sensor is on")
    sector_id: Optional[str] = Field(None, description="Sector the sensor belongs to")


# =============================================================================
# RESPONSE MODELS - What backend returns to frontend
# =============================================================================

class SensorListResponse(BaseModel):
    response: list[Sensor] = Field(..., description="List of sensors")


class MessageResponse(BaseModel):
    message: str = Field(..., description="What happened")
