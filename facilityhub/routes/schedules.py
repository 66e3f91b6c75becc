import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import AuthorizationError, NotFoundError
from ..models.models import Room, Schedule, User
from ..schemas.schedules import ScheduleCreate, ScheduleResponse, ScheduleUpdate
from ..services.permission_catalog import PermissionCode as P
from ..services.permissions import is_staff
from ..services.schedule_conflict import DAYS_OF_WEEK, ensure_no_conflict, normalize_day


router = APIRouter(tags=["schedules"])


def _ordered(query):
    rows = query.all()
    return sorted(rows, key=lambda s: (DAYS_OF_WEEK.index(s.day_of_week), s.start_time))


def _get_schedule_or_404(db: Session, schedule_id: uuid.UUID) -> Schedule:
    row = db.query(Schedule).filter(Schedule.id == schedule_id).first()
    if not row:
        raise NotFoundError("Schedule not found")
    return row


def _ensure_can_manage(user: User, schedule: Schedule):
    if not is_staff(user) and schedule.user_id != user.id:
        raise AuthorizationError("You can only change your own schedules")


@router.get("/schedules", response_model=List[ScheduleResponse])
def list_schedules(
    room_id: Optional[uuid.UUID] = None,
    day_of_week: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.SCHEDULE_READ)),
):
    query = db.query(Schedule)
    if room_id:
        query = query.filter(Schedule.room_id == room_id)
    if day_of_week:
        query = query.filter(Schedule.day_of_week == normalize_day(day_of_week))
    return _ordered(query)


@router.post("/schedules", response_model=ScheduleResponse, status_code=201)
def create_schedule(
    payload: ScheduleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.SCHEDULE_CREATE)),
):
    if not db.query(Room).filter(Room.id == payload.room_id).first():
        raise NotFoundError("Room not found")
    owner_id = payload.user_id or user.id
    if owner_id != user.id:
        if not is_staff(user):
            raise AuthorizationError("You can only book schedules for yourself")
        if not db.query(User).filter(User.id == owner_id).first():
            raise NotFoundError("User not found")
    day = payload.day_of_week.value
    ensure_no_conflict(db, payload.room_id, day, payload.start_time, payload.end_time)
    row = Schedule(
        title=payload.title,
        description=payload.description,
        day_of_week=day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        room_id=payload.room_id,
        user_id=owner_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(schedule_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.SCHEDULE_READ))):
    return _get_schedule_or_404(db, schedule_id)


@router.patch("/schedules/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    schedule_id: uuid.UUID,
    payload: ScheduleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.SCHEDULE_UPDATE)),
):
    row = _get_schedule_or_404(db, schedule_id)
    _ensure_can_manage(user, row)
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    if data.get("day_of_week") is not None:
        data["day_of_week"] = data["day_of_week"].value
    if data.get("room_id") and not db.query(Room).filter(Room.id == data["room_id"]).first():
        raise NotFoundError("Room not found")

    ensure_no_conflict(
        db,
        data.get("room_id", row.room_id),
        data.get("day_of_week", row.day_of_week),
        data.get("start_time", row.start_time),
        data.get("end_time", row.end_time),
        exclude_schedule_id=row.id,
    )
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.SCHEDULE_DELETE)),
):
    row = _get_schedule_or_404(db, schedule_id)
    _ensure_can_manage(user, row)
    db.delete(row)
    db.commit()
    return {"status": "ok"}


@router.get("/rooms/{room_id}/schedules", response_model=List[ScheduleResponse])
def list_room_schedules(room_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.SCHEDULE_READ))):
    if not db.query(Room).filter(Room.id == room_id).first():
        raise NotFoundError("Room not found")
    return _ordered(db.query(Schedule).filter(Schedule.room_id == room_id))


@router.get("/users/{user_id}/schedules", response_model=List[ScheduleResponse])
def list_user_schedules(user_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.SCHEDULE_READ))):
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundError("User not found")
    return _ordered(db.query(Schedule).filter(Schedule.user_id == user_id))
