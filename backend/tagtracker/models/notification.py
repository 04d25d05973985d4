"""
Notification Models
===================
Pydantic models for tag detections.

- BrokerMessage: what a sensor publishes on the MQTT topic
- Notification: what we store (one detection of a tag by a sensor)
- Tag: a tracked object/person, created the first time it shows up
- SectorVisits: one row of the visit report (derived, never stored)

Author: Tag Tracker Team
"""

from pydantic import BaseModel, ConfigDict, Field


class BrokerMessage(BaseModel):
    """
    Payload published by a sensor.

    Example:
        {"tag_id": "badge-42", "sensor_id": "door-1"}

    Any other field (including a timestamp) is ignored; the backend
    stamps the time itself when the message arrives.
    """
    model_config = ConfigDict(extra="ignore")

    tag_id: str = Field(..., min_length=1, description="Detected tag")
    sensor_id: str = Field(..., min_length=1, description="Sensor that saw the tag")


class Notification(BaseModel):
    """A stored tag detection."""
    model_config = ConfigDict(extra="ignore")

    tag_id: str = Field(..., description="Detected tag")
    sensor_id: str = Field(..., description="Sensor that saw the tag")
    timestamp: int = Field(..., description="Ingestion time, epoch milliseconds")


class Tag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_id: str
    name: str
    owner: str


class SectorVisits(BaseModel):
    """How many visits a sector received in the requested window."""
    sector_id: str = Field(..., description="Sector identifier")
    visits: int = Field(..., ge=0, description="Number of visits")


class NotificationListResponse(BaseModel):
    response: list[Notification] = Field(..., description="Matching notifications")


class VisitListResponse(BaseModel):
    response: list[SectorVisits] = Field(..., description="Visits per sector")
