"""
Visit Aggregation
=================

Turns a stream of tag detections into "how many visits did each sector get".

HOW A VISIT IS COUNTED:
----------------------
We walk the notifications in order and remember, for every tag, the
sector it was last seen in.

    - First time we see a tag      -> that sector's count is set to 1
    - Tag shows up in a NEW sector -> that sector gets +1
    - Tag seen again, same sector  -> nothing (still the same visit)

Sectors come from the sensors: notification.sensor_id -> sensor.sector_id.
Notifications from sensors the caller doesn't own are skipped, so other
accounts' sensors can never show up in a report.

Example (one tag, sensors in sectors S1, S1, S2, S1):

    S1  first sighting   -> S1 = 1
    S1  same sector      -> S1 = 1
    S2  moved            -> S2 = 1
    S1  moved back       -> S1 = 2

ORDER MATTERS:
-------------
The fold trusts the order it's given. Callers sort by timestamp first
(see NotificationService.visit_report).

Author: Tag Tracker Team
"""

from typing import Any, Iterable, Mapping

from tagtracker.models import SectorVisits


class NoSensorsError(Exception):
    """The caller owns no sensors, so there's nothing to report on."""


def _field(notification: Any, name: str) -> Any:
    if isinstance(notification, Mapping):
        return notification.get(name)
    return getattr(notification, name, None)


def aggregate_visits(
    sector_by_sensor: Mapping[str, str],
    notifications: Iterable[Any],
) -> list[SectorVisits]:
    """
    Count visits per sector.

    Args:
        sector_by_sensor: The caller's sensors, sensor_id -> sector_id
        notifications: Notification models or dicts with tag_id and sensor_id,
            already in the order they happened

    Returns:
        One SectorVisits per sector touched, in the order sectors were first touched
    """
    last_sector_for_tag: dict[str, str] = {}
    sector_visits: dict[str, int] = {}

    for notification in notifications:
        sensor_id = _field(notification, "sensor_id")
        if sensor_id not in sector_by_sensor:
            continue

        tag_id = _field(notification, "tag_id")
        sector_id = sector_by_sensor[sensor_id]

        if tag_id not in last_sector_for_tag:
            # First sighting in the window. The count is SET, not incremented.
            last_sector_for_tag[tag_id] = sector_id
            sector_visits[sector_id] = 1
        elif last_sector_for_tag[tag_id] != sector_id:
            sector_visits[sector_id] = sector_visits.get(sector_id, 0) + 1
            last_sector_for_tag[tag_id] = sector_id

    return [SectorVisits(sector_id=sector_id, visits=visits) for sector_id, visits in sector_visits.items()]
