"""
Services Package
================

These are the "workers" that do the actual work.

- MongoStore / MemoryStore: Where everything is persisted
- TokenAuthenticator: Figures out who is calling
- NotificationService: Answers the notification queries
- SensorManager: Adds, moves and removes sensors
- aggregate_visits: Counts visits per sector
- NotificationIngestor: Stores what the sensors publish
- MessageSubscriber: Listens to the MQTT broker
"""

from .store import MongoStore, MemoryStore, DocumentStore
from .auth import TokenAuthenticator, Owner
from .visits import aggregate_visits, NoSensorsError
from .notifications import NotificationService
from .sensor_manager import SensorManager
from .ingestion import NotificationIngestor
from .broker import MessageSubscriber

__all__ = [
    "MongoStore",
    "MemoryStore",
    "DocumentStore",
    "TokenAuthenticator",
    "Owner",
    "aggregate_visits",
    "NoSensorsError",
    "NotificationService",
    "SensorManager",
    "NotificationIngestor",
    "MessageSubscriber",
]
