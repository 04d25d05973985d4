"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from tagtracker.models import Sensor, Notification, Range
"""

from .query import (
    # Store-agnostic filters
    Predicate,
    Equals,
    Range,
    Or,
    And,
    where,
    to_mongo,
    matches,
)
from .notification import (
    # What sensors publish and what we store
    BrokerMessage,
    Notification,
    Tag,

    # What we send back to the frontend
    SectorVisits,
    NotificationListResponse,
    VisitListResponse,
)
from .sensor import (
    Sensor,
    AddSensorRequest,
    UpdateSensorRequest,
    SensorListResponse,
    MessageResponse,
)

__all__ = [
    "Predicate",
    "Equals",
    "Range",
    "Or",
    "And",
    "where",
    "to_mongo",
    "matches",
    "BrokerMessage",
    "Notification",
    "Tag",
    "SectorVisits",
    "NotificationListResponse",
    "VisitListResponse",
    "Sensor",
    "AddSensorRequest",
    "UpdateSensorRequest",
    "SensorListResponse",
    "MessageResponse",
]
