"""
Attendance sign-ins for scheduled room sessions.

Each sign-in carries an equipment checklist for the room. When something is
missing and the caller asks for it, an ISSUE_REPORT ticket is opened on the
schedule's room.
"""
from datetime import datetime
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session, joinedload

from ..errors import NotFoundError
from ..models.models import Attendance, Schedule, Ticket, User
from .permission_catalog import PermissionCode
from .permissions import has_permission
from .tickets import create_ticket


log = structlog.get_logger(__name__)

EQUIPMENT_LABELS = (
    ("system_unit", "System Unit"),
    ("keyboard", "Keyboard"),
    ("mouse", "Mouse"),
    ("internet", "Internet"),
    ("ups", "UPS"),
)


def missing_equipment(checklist) -> List[str]:
    """Labels of checklist items reported as missing, in checklist order."""
    getter = checklist.get if isinstance(checklist, dict) else lambda k: getattr(checklist, k, None)
    return [label for field, label in EQUIPMENT_LABELS if not getter(field)]


def _issue_description(attendance: Attendance, schedule: Schedule, missing: List[str]) -> str:
    return "\n".join([
        f"Student: {attendance.first_name} {attendance.last_name}",
        f"Email: {attendance.email}",
        f"Section: {attendance.section}",
        f"Year Level: {attendance.year_level}",
        f"Subject: {attendance.subject}",
        f"Date: {attendance.date:%Y-%m-%d}",
        f"Room: {schedule.room.number if schedule.room else '-'}",
        "",
        "Missing/Non-functional Equipment:",
        ", ".join(missing),
        "",
        "Additional Notes:",
        attendance.description or "No additional notes provided.",
    ])


def record_attendance(
    db: Session,
    user: Optional[User],
    data: dict,
    create_ticket_on_issue: bool = False,
) -> Tuple[Attendance, Optional[Ticket]]:
    """Store a sign-in and, if requested, report missing equipment.

    The ticket is opened as `user` and only when that user may create tickets.

    Returns:
        The attendance row and the ticket that was opened, if any
    """
    schedule = db.query(Schedule).filter(Schedule.id == data["schedule_id"]).first()
    if not schedule:
        raise NotFoundError("Schedule not found")

    attendance = Attendance(**data, date=datetime.utcnow())
    db.add(attendance)
    db.commit()
    db.refresh(attendance)
    log.info("attendance_recorded", attendance_id=str(attendance.id), schedule_id=str(schedule.id))

    missing = missing_equipment(attendance)
    if not missing or not create_ticket_on_issue:
        return attendance, None
    if not has_permission(user, PermissionCode.TICKET_CREATE):
        log.info("attendance_ticket_skipped", attendance_id=str(attendance.id), reason="no_ticket_permission")
        return attendance, None

    ticket = create_ticket(db, user, {
        "title": f"Equipment Issue: {', '.join(missing)} - {attendance.first_name} {attendance.last_name}",
        "description": _issue_description(attendance, schedule, missing),
        "priority": "MEDIUM",
        "ticket_type": "ISSUE_REPORT",
        "room_id": schedule.room_id,
    })
    attendance.ticket_id = ticket.id
    db.commit()
    db.refresh(attendance)
    return attendance, ticket


def list_attendance(
    db: Session,
    schedule_id=None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Attendance], int]:
    """Newest first, with the schedule, its room and owner loaded."""
    query = db.query(Attendance)
    if schedule_id:
        query = query.filter(Attendance.schedule_id == schedule_id)
    if start_date:
        query = query.filter(Attendance.date >= start_date)
    if end_date:
        query = query.filter(Attendance.date <= end_date)

    total = query.count()
    rows = (
        query.options(joinedload(Attendance.schedule).joinedload(Schedule.room),
                      joinedload(Attendance.schedule).joinedload(Schedule.user))
        .order_by(Attendance.date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
