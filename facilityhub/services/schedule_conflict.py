"""
Schedule conflict detection service.
HARD STOP rule: Do not allow overlapping bookings for the same room on the same day.
"""
from datetime import time
from typing import Optional, List

import structlog
from sqlalchemy.orm import Session

from ..errors import ConflictError, ValidationError
from ..models.models import Schedule


log = structlog.get_logger(__name__)

DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def times_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """
    Check if two time intervals overlap.
    Intervals are half-open, so one ending at 10:00 and another starting at 10:00
    do not overlap.

    Args:
        start1: First interval start
        end1: First interval end
        start2: Second interval start
        end2: Second interval end

    Returns:
        True if intervals overlap
    """
    return start1 < end2 and start2 < end1


def normalize_day(day_of_week: str) -> str:
    day = (day_of_week or "").strip().lower()
    if day not in DAYS_OF_WEEK:
        raise ValidationError(
            f"Invalid day of week. Expected one of: {', '.join(DAYS_OF_WEEK)}", field="day_of_week"
        )
    return day


def validate_time_range(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValidationError("End time must be after start time", field="end_time")


def get_conflicting_schedules(
    db: Session,
    room_id,
    day_of_week: str,
    start_time: time,
    end_time: time,
    exclude_schedule_id=None,
) -> List[Schedule]:
    """
    Get list of schedules in the room that overlap the requested slot.

    Args:
        db: Database session
        room_id: Room being booked
        day_of_week: monday..saturday
        start_time: Requested start
        end_time: Requested end
        exclude_schedule_id: Optional schedule ID to exclude from check (for updates)

    Returns:
        List of Schedule objects that conflict
    """
    query = db.query(Schedule).filter(
        Schedule.room_id == room_id,
        Schedule.day_of_week == day_of_week,
    )
    if exclude_schedule_id:
        query = query.filter(Schedule.id != exclude_schedule_id)

    return [
        s for s in query.all()
        if times_overlap(start_time, end_time, s.start_time, s.end_time)
    ]


def ensure_no_conflict(
    db: Session,
    room_id,
    day_of_week: str,
    start_time: time,
    end_time: time,
    exclude_schedule_id=None,
) -> None:
    validate_time_range(start_time, end_time)
    conflicts = get_conflicting_schedules(
        db, room_id, day_of_week, start_time, end_time, exclude_schedule_id
    )
    if conflicts:
        log.info(
            "schedule_conflict",
            room_id=str(room_id),
            day_of_week=day_of_week,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            conflicting_ids=[str(s.id) for s in conflicts],
        )
        raise ConflictError("Schedule conflicts with an existing booking")
