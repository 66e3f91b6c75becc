"""
Ticket workflow: status transitions, visibility, and role-gated updates.
"""
import enum
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Set

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models.models import Asset, Room, Ticket, TicketComment, User
from .permission_catalog import Role
from .permissions import is_admin, is_staff, resolve_role


log = structlog.get_logger(__name__)


class TicketStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


ALLOWED_TRANSITIONS: Dict[TicketStatus, Set[TicketStatus]] = {
    TicketStatus.OPEN: {TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.IN_PROGRESS: {TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.RESOLVED: {TicketStatus.CLOSED, TicketStatus.OPEN},
    TicketStatus.CLOSED: {TicketStatus.OPEN},
}


def can_transition(current: str, target: str) -> bool:
    try:
        src, dst = TicketStatus(current), TicketStatus(target)
    except ValueError:
        return False
    if src == dst:
        return True
    return dst in ALLOWED_TRANSITIONS[src]


def apply_status(ticket: Ticket, target: str) -> None:
    """Move `ticket` to `target`, maintaining `resolved_at`."""
    current = ticket.status or TicketStatus.OPEN.value
    if not can_transition(current, target):
        raise ValidationError(f"Cannot change ticket status from {current} to {target}", field="status")
    if target == current:
        return
    ticket.status = target
    if target == TicketStatus.RESOLVED.value:
        ticket.resolved_at = datetime.utcnow()
    elif target == TicketStatus.OPEN.value:
        ticket.resolved_at = None


def _is_member_like(user: User) -> bool:
    return not is_staff(user)


def can_view_ticket(user: Optional[User], ticket: Ticket) -> bool:
    if user is None:
        return False
    if is_staff(user):
        return True
    return user.id in (ticket.created_by_id, ticket.assigned_to_id)


def can_see_private_comments(user: Optional[User], ticket: Ticket) -> bool:
    if user is None:
        return False
    if is_staff(user):
        return True
    return user.id in (ticket.assigned_to_id, ticket.moderator_id)


def visible_comments(user: Optional[User], ticket: Ticket) -> List[TicketComment]:
    """Public comments, the viewer's own comments, and private ones when allowed."""
    if user is None:
        return []
    private_ok = can_see_private_comments(user, ticket)
    return [
        c for c in ticket.comments
        if not c.is_private or private_ok or c.author_id == user.id
    ]


def get_ticket_for(db: Session, user: User, ticket_id) -> Ticket:
    ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
    if not ticket:
        raise NotFoundError("Ticket not found")
    if not can_view_ticket(user, ticket):
        raise AuthorizationError("Access denied")
    return ticket


def list_tickets_for(
    db: Session,
    user: User,
    status: Optional[str] = None,
    created_by_me: bool = False,
    assigned_to_me: bool = False,
) -> List[Ticket]:
    query = db.query(Ticket)
    if not is_staff(user):
        query = query.filter(or_(Ticket.created_by_id == user.id, Ticket.assigned_to_id == user.id))
    if status:
        query = query.filter(Ticket.status == status)
    if created_by_me:
        query = query.filter(Ticket.created_by_id == user.id)
    if assigned_to_me:
        query = query.filter(Ticket.assigned_to_id == user.id)
    return query.order_by(Ticket.created_at.desc()).all()


def _ensure_reference(db: Session, model, value, label: str):
    if value is None:
        return None
    obj = db.query(model).filter(model.id == value).first()
    if not obj:
        raise NotFoundError(f"{label} not found")
    return obj.id


def create_ticket(db: Session, user: User, data: dict) -> Ticket:
    ticket = Ticket(
        title=data["title"],
        description=data["description"],
        priority=data.get("priority") or "MEDIUM",
        ticket_type=data.get("ticket_type") or "ISSUE_REPORT",
        asset_id=_ensure_reference(db, Asset, data.get("asset_id"), "Asset"),
        room_id=_ensure_reference(db, Room, data.get("room_id"), "Room"),
        status=TicketStatus.OPEN.value,
        created_by_id=user.id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    log.info("ticket_created", ticket_id=str(ticket.id), created_by=str(user.id))
    return ticket


def update_ticket(db: Session, user: User, ticket: Ticket, data: dict) -> Ticket:
    """Apply a partial update, enforcing who may change what.

    Members only touch their own tickets, technicians only change status on tickets
    assigned to them, staff assign, and only admins set the moderator.
    """
    role = resolve_role(user.role)
    status = data.get("status")

    if _is_member_like(user) and ticket.created_by_id != user.id:
        raise AuthorizationError("Access denied")

    if role == Role.technician and status and ticket.assigned_to_id != user.id:
        raise AuthorizationError("Technicians can only update tickets assigned to them")

    if "assigned_to_id" in data:
        if not is_staff(user):
            raise AuthorizationError("Only staff can assign tickets")
        ticket.assigned_to_id = _ensure_reference(db, User, data["assigned_to_id"], "Assignee")

    if "moderator_id" in data:
        if not is_admin(user):
            raise AuthorizationError("Only admins can set a moderator")
        ticket.moderator_id = _ensure_reference(db, User, data["moderator_id"], "Moderator")

    if data.get("priority"):
        ticket.priority = data["priority"]
    for field in ("title", "description"):
        if data.get(field):
            setattr(ticket, field, data[field])

    previous = ticket.status
    if status:
        apply_status(ticket, status)

    ticket.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(ticket)
    if status and status != previous:
        log.info("ticket_status_changed", ticket_id=str(ticket.id), old=previous, new=ticket.status, by=str(user.id))
    return ticket


def add_comment(db: Session, user: User, ticket: Ticket, content: str, is_private: bool = False) -> TicketComment:
    if not can_view_ticket(user, ticket):
        raise AuthorizationError("Access denied")
    if is_private and not is_staff(user):
        raise AuthorizationError("Regular users cannot create private comments")
    if not content or not content.strip():
        raise ValidationError("Comment content is required", field="content")
    comment = TicketComment(ticket_id=ticket.id, author_id=user.id, content=content, is_private=is_private)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def delete_ticket(db: Session, ticket_id: uuid.UUID) -> None:
    ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
    if not ticket:
        raise NotFoundError("Ticket not found")
    db.delete(ticket)
    db.commit()
