import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..models.models import User
from ..schemas.tickets import (
    CommentCreate,
    CommentResponse,
    TicketCreate,
    TicketDetailResponse,
    TicketResponse,
    TicketUpdate,
)
from ..services.permission_catalog import PermissionCode as P
from ..services.tickets import (
    add_comment,
    create_ticket,
    delete_ticket,
    get_ticket_for,
    list_tickets_for,
    update_ticket,
    visible_comments,
)


router = APIRouter(prefix="/tickets", tags=["tickets"])


def _detail(user: User, ticket) -> TicketDetailResponse:
    out = TicketDetailResponse.model_validate(ticket)
    out.comments = [CommentResponse.model_validate(c) for c in visible_comments(user, ticket)]
    return out


@router.get("", response_model=List[TicketResponse])
def list_tickets(
    status: Optional[str] = None,
    created_by_me: bool = False,
    assigned_to_me: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_READ)),
):
    return list_tickets_for(
        db, user, status=status.upper() if status else None,
        created_by_me=created_by_me, assigned_to_me=assigned_to_me,
    )


@router.post("", response_model=TicketResponse, status_code=201)
def post_ticket(
    payload: TicketCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_CREATE)),
):
    data = payload.model_dump()
    data["priority"] = payload.priority.value
    data["ticket_type"] = payload.ticket_type.value
    return create_ticket(db, user, data)


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
def get_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_READ)),
):
    return _detail(user, get_ticket_for(db, user, ticket_id))


@router.patch("/{ticket_id}", response_model=TicketResponse)
def patch_ticket(
    ticket_id: uuid.UUID,
    payload: TicketUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_UPDATE, P.TICKET_CREATE)),
):
    """Members reach this through ticket_create so they can close their own tickets."""
    ticket = get_ticket_for(db, user, ticket_id)
    data = payload.model_dump(exclude_unset=True)
    for key in ("status", "priority"):
        if data.get(key) is not None:
            data[key] = data[key].value
    return update_ticket(db, user, ticket, data)


@router.delete("/{ticket_id}")
def remove_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.TICKET_DELETE)),
):
    delete_ticket(db, ticket_id)
    return {"status": "ok"}


@router.get("/{ticket_id}/comments", response_model=List[CommentResponse])
def list_comments(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_READ)),
):
    return visible_comments(user, get_ticket_for(db, user, ticket_id))


@router.post("/{ticket_id}/comments", response_model=CommentResponse, status_code=201)
def post_comment(
    ticket_id: uuid.UUID,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.TICKET_READ)),
):
    ticket = get_ticket_for(db, user, ticket_id)
    return add_comment(db, user, ticket, payload.content, payload.is_private)
