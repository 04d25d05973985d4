"""
Notifications API Router
========================

Read what your sensors have seen.

TIMESTAMP RANGES:
----------------
Wherever a {timestamp} appears you can send (epoch milliseconds):
    1700000000000                exactly then
    1700000000000-               from then on
    -1700000000000               up to then
    1700000000000-1700000900000  in between (both included)

ALL ENDPOINTS:
-------------
GET    /notifications/                              - Everything your sensors saw
GET    /notifications/{timestamp}/                  - Same, within a range
GET    /notifications/sensor/{sensor_id}/[{timestamp}] - One of your sensors
GET    /notifications/tag/{tag_id}/[{timestamp}]    - One of your tags
GET    /notifications/visit/{timestamp}             - Visits per sector in a range
DELETE /notifications/                              - Delete all your notifications

Results come back oldest first as {"response": [...]}; 204 means the
query was fine but nothing matched.

Author: Tag Tracker Team
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from typing import Optional

from tagtracker.models import MessageResponse, NotificationListResponse, VisitListResponse
from tagtracker.routers.sensors import get_owner, get_store
from tagtracker.services import DocumentStore, NoSensorsError, NotificationService, Owner
from tagtracker.utils import MalformedRangeError, TimestampFilter, parse_timestamp_range


router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(store: DocumentStore = Depends(get_store)) -> NotificationService:
    return NotificationService(store)


def _parse_range(timestamp: Optional[str], required: bool = False) -> Optional[TimestampFilter]:
    """Parse a {timestamp} path part, answering 406 when it doesn't make sense."""
    try:
        timestamps = parse_timestamp_range(timestamp)
    except MalformedRangeError:
        raise HTTPException(status_code=406, detail="URL is malformed!")
    if timestamps is None and required:
        raise HTTPException(status_code=406, detail="URL is malformed!")
    return timestamps


def _listing(notifications) -> Response | NotificationListResponse:
    if not notifications:
        return Response(status_code=204)
    return NotificationListResponse(response=notifications)


# =============================================================================
# ALL OF YOUR SENSORS
# =============================================================================

@router.get("/", response_model=NotificationListResponse)
async def get_all_notifications(
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """Every notification from every sensor you own."""
    try:
        notifications = await service.list_for_owner(owner.owner)
    except NoSensorsError:
        return Response(status_code=204)
    return _listing(notifications)


@router.delete("/", response_model=MessageResponse)
async def delete_all_notifications(
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Delete every notification from every sensor you own.

    There's no undo!
    """
    try:
        deleted = await service.delete_for_owner(owner.owner)
    except NoSensorsError:
        return Response(status_code=204)
    if deleted == 0:
        raise HTTPException(status_code=406, detail="Notifications failed to delete, contact admin for help")
    return MessageResponse(message="All notifications deleted!")


# =============================================================================
# VISITS
# =============================================================================

@router.get("/visit/{timestamp}", response_model=VisitListResponse)
async def get_visits(
    timestamp: str,
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """
    How many visits each of your sectors got in a time range.

    A visit is a tag showing up in a sector: its first sighting in the
    range, or moving there from another sector. Seeing the same tag
    again in the same sector doesn't count twice.
    """
    timestamps = _parse_range(timestamp, required=True)
    try:
        visits = await service.visit_report(owner.owner, timestamps)
    except NoSensorsError:
        raise HTTPException(status_code=406, detail="No sensors found!")
    if not visits:
        return Response(status_code=204)
    return VisitListResponse(response=visits)


# =============================================================================
# ONE SENSOR / ONE TAG
# =============================================================================

@router.get("/sensor/{sensor_id}/", response_model=NotificationListResponse)
@router.get("/sensor/{sensor_id}/{timestamp}", response_model=NotificationListResponse)
async def get_sensor_notifications(
    sensor_id: str,
    timestamp: Optional[str] = None,
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """Notifications from one of your sensors, optionally within a range."""
    timestamps = _parse_range(timestamp)
    notifications = await service.list_for_sensor(owner.owner, sensor_id, timestamps)
    if notifications is None:
        raise HTTPException(status_code=406, detail=f"No sensor '{sensor_id}' found!")
    return _listing(notifications)


@router.get("/tag/{tag_id}/", response_model=NotificationListResponse)
@router.get("/tag/{tag_id}/{timestamp}", response_model=NotificationListResponse)
async def get_tag_notifications(
    tag_id: str,
    timestamp: Optional[str] = None,
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """Where one of your tags was seen, optionally within a range."""
    timestamps = _parse_range(timestamp)
    notifications = await service.list_for_tag(owner.owner, tag_id, timestamps)
    if notifications is None:
        raise HTTPException(status_code=406, detail=f"No tag '{tag_id}' found!")
    return _listing(notifications)


# =============================================================================
# TIME RANGE (must come after the fixed prefixes above)
# =============================================================================

@router.get("/{timestamp}/", response_model=NotificationListResponse)
async def get_notifications_in_range(
    timestamp: str,
    owner: Owner = Depends(get_owner),
    service: NotificationService = Depends(get_notification_service),
):
    """Notifications from all your sensors within a time range."""
    timestamps = _parse_range(timestamp, required=True)
    try:
        notifications = await service.list_for_owner(owner.owner, timestamps)
    except NoSensorsError:
        raise HTTPException(status_code=406, detail="No sensor found!")
    return _listing(notifications)
