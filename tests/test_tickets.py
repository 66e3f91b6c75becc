"""
Tests for the ticket workflow
"""
import pytest

from facilityhub.errors import AuthorizationError, NotFoundError, ValidationError
from facilityhub.services.tickets import (
    TicketStatus,
    add_comment,
    apply_status,
    can_transition,
    can_view_ticket,
    create_ticket,
    get_ticket_for,
    list_tickets_for,
    update_ticket,
    visible_comments,
)


@pytest.fixture
def ticket(db, member, facility):
    return create_ticket(db, member, {
        "title": "Projector flickers",
        "description": "Room 101 projector flickers after ten minutes",
        "room_id": facility["room_a"].id,
    })


@pytest.mark.unit
class TestStatusTransitions:
    """Ticket status machine"""

    def test_new_ticket_is_open(self, ticket):
        assert ticket.status == "OPEN"
        assert ticket.priority == "MEDIUM"
        assert ticket.resolved_at is None

    @pytest.mark.parametrize("current,target,allowed", [
        ("OPEN", "IN_PROGRESS", True),
        ("IN_PROGRESS", "RESOLVED", True),
        ("RESOLVED", "CLOSED", True),
        ("CLOSED", "OPEN", True),
        ("CLOSED", "RESOLVED", False),
        ("RESOLVED", "IN_PROGRESS", False),
        ("OPEN", "OPEN", True),
        ("OPEN", "BOGUS", False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_resolve_stamps_and_reopen_clears(self, ticket):
        apply_status(ticket, TicketStatus.RESOLVED.value)
        assert ticket.resolved_at is not None
        apply_status(ticket, TicketStatus.OPEN.value)
        assert ticket.status == "OPEN"
        assert ticket.resolved_at is None

    def test_invalid_transition_raises(self, ticket):
        apply_status(ticket, "CLOSED")
        with pytest.raises(ValidationError) as exc:
            apply_status(ticket, "IN_PROGRESS")
        assert str(exc.value) == "Cannot change ticket status from CLOSED to IN_PROGRESS"


@pytest.mark.unit
class TestVisibility:
    """Who sees which tickets and comments"""

    def test_creator_and_staff_see_ticket(self, ticket, member, technician, admin):
        assert can_view_ticket(member, ticket)
        assert can_view_ticket(technician, ticket)
        assert can_view_ticket(admin, ticket)
        assert not can_view_ticket(None, ticket)

    def test_other_member_denied(self, db, ticket, make_user):
        stranger = make_user("member")
        with pytest.raises(AuthorizationError):
            get_ticket_for(db, stranger, ticket.id)
        assert list_tickets_for(db, stranger) == []

    def test_missing_ticket(self, db, admin):
        import uuid
        with pytest.raises(NotFoundError):
            get_ticket_for(db, admin, uuid.uuid4())

    def test_staff_list_everything(self, db, ticket, technician):
        assert [t.id for t in list_tickets_for(db, technician)] == [ticket.id]

    def test_private_comments_hidden_from_creator(self, db, ticket, member, technician):
        add_comment(db, technician, ticket, "Lamp hours at 4800", is_private=True)
        add_comment(db, technician, ticket, "Replacement lamp ordered")
        db.refresh(ticket)

        member_view = [c.content for c in visible_comments(member, ticket)]
        staff_view = [c.content for c in visible_comments(technician, ticket)]
        assert member_view == ["Replacement lamp ordered"]
        assert sorted(staff_view) == ["Lamp hours at 4800", "Replacement lamp ordered"]

    def test_member_cannot_post_private(self, db, ticket, member):
        with pytest.raises(AuthorizationError) as exc:
            add_comment(db, member, ticket, "secret", is_private=True)
        assert str(exc.value) == "Regular users cannot create private comments"

    def test_blank_comment_rejected(self, db, ticket, member):
        with pytest.raises(ValidationError):
            add_comment(db, member, ticket, "   ")


@pytest.mark.unit
class TestUpdateRules:
    """Role-gated ticket updates"""

    def test_member_closes_own_ticket(self, db, ticket, member):
        updated = update_ticket(db, member, ticket, {"status": "CLOSED"})
        assert updated.status == "CLOSED"

    def test_member_cannot_touch_others(self, db, ticket, make_user):
        other = make_user("member")
        with pytest.raises(AuthorizationError):
            update_ticket(db, other, ticket, {"title": "hijacked"})

    def test_member_cannot_assign(self, db, ticket, member, technician):
        with pytest.raises(AuthorizationError) as exc:
            update_ticket(db, member, ticket, {"assigned_to_id": technician.id})
        assert str(exc.value) == "Only staff can assign tickets"

    def test_unassigned_technician_cannot_change_status(self, db, ticket, technician):
        with pytest.raises(AuthorizationError):
            update_ticket(db, technician, ticket, {"status": "IN_PROGRESS"})

    def test_assigned_technician_progresses_ticket(self, db, ticket, technician, admin):
        update_ticket(db, admin, ticket, {"assigned_to_id": technician.id})
        updated = update_ticket(db, technician, ticket, {"status": "RESOLVED"})
        assert updated.status == "RESOLVED"
        assert updated.resolved_at is not None

    def test_only_admin_sets_moderator(self, db, ticket, technician, admin, make_user):
        moderator = make_user("manager")
        with pytest.raises(AuthorizationError):
            update_ticket(db, technician, ticket, {"moderator_id": moderator.id})
        updated = update_ticket(db, admin, ticket, {"moderator_id": moderator.id})
        assert updated.moderator_id == moderator.id

    def test_moderator_sees_private_comments(self, db, ticket, technician, admin, make_user):
        moderator = make_user("member")
        update_ticket(db, admin, ticket, {"moderator_id": moderator.id})
        add_comment(db, technician, ticket, "internal note", is_private=True)
        db.refresh(ticket)
        assert [c.content for c in visible_comments(moderator, ticket)] == ["internal note"]
