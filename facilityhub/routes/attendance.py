import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user, require_permissions
from ..models.models import Attendance, User
from ..schemas.attendance import AttendanceCreate, AttendancePage, AttendanceResponse
from ..services.attendance import list_attendance, missing_equipment, record_attendance
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/attendance", tags=["attendance"])


def _to_response(row: Attendance) -> AttendanceResponse:
    out = AttendanceResponse.model_validate(row)
    out.missing_equipment = missing_equipment(row)
    return out


@router.post("", status_code=201)
def submit_attendance(
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Record attendance; open an equipment ticket when asked and something is missing."""
    data = payload.model_dump(exclude={"create_ticket"})
    attendance, ticket = record_attendance(db, user, data, create_ticket_on_issue=payload.create_ticket)
    return {
        "status": "ok",
        "attendance": _to_response(attendance).model_dump(mode="json"),
        "ticket_id": str(ticket.id) if ticket else None,
    }


@router.get("", response_model=AttendancePage)
def get_attendance(
    schedule_id: Optional[uuid.UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.SCHEDULE_READ)),
):
    """
    List attendance records with pagination

    Args:
        schedule_id: Only records for this schedule
        start_date: Records on or after this moment
        end_date: Records on or before this moment
        page: Page number (1-indexed)
        limit: Number of items per page (default 10, max 200)
    """
    limit = min(max(1, limit), 200)
    page = max(1, page)
    rows, total = list_attendance(db, schedule_id, start_date, end_date, page=page, limit=limit)
    return {
        "items": [_to_response(r) for r in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
    }
