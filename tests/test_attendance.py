"""
Tests for attendance sign-ins and equipment issue tickets
"""
import uuid
from datetime import datetime, time, timedelta

import pytest

from facilityhub.errors import NotFoundError
from facilityhub.models.models import Attendance, Schedule, Ticket
from facilityhub.services.attendance import list_attendance, missing_equipment, record_attendance


@pytest.fixture
def schedule(db, facility, technician):
    s = Schedule(
        title="Intro to Networking",
        day_of_week="tuesday",
        start_time=time(13, 0),
        end_time=time(15, 0),
        user_id=technician.id,
        room_id=facility["room_a"].id,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


def sign_in(schedule_id, **overrides):
    data = {
        "schedule_id": schedule_id,
        "first_name": "Lea",
        "last_name": "Santos",
        "email": "lea.santos@campus.edu",
        "section": "BSIT-2A",
        "year_level": "2",
        "subject": "Networking",
        "description": None,
        "system_unit": True,
        "keyboard": True,
        "mouse": True,
        "internet": True,
        "ups": True,
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestMissingEquipment:
    def test_all_present(self):
        assert missing_equipment(sign_in(None)) == []

    def test_labels_in_checklist_order(self):
        assert missing_equipment(sign_in(None, ups=False, keyboard=False)) == ["Keyboard", "UPS"]


@pytest.mark.unit
class TestRecordAttendance:
    """Attendance service"""

    def test_records_without_ticket(self, db, member, schedule):
        attendance, ticket = record_attendance(db, member, sign_in(schedule.id), create_ticket_on_issue=True)
        assert ticket is None
        assert attendance.schedule_id == schedule.id
        assert attendance.date is not None
        assert db.query(Ticket).count() == 0

    def test_missing_equipment_opens_ticket(self, db, member, schedule, facility):
        attendance, ticket = record_attendance(
            db, member, sign_in(schedule.id, mouse=False, internet=False, description="Port 4 dead"),
            create_ticket_on_issue=True,
        )
        assert ticket is not None
        assert ticket.title == "Equipment Issue: Mouse, Internet - Lea Santos"
        assert ticket.ticket_type == "ISSUE_REPORT"
        assert ticket.priority == "MEDIUM"
        assert ticket.status == "OPEN"
        assert ticket.room_id == facility["room_a"].id
        assert ticket.created_by_id == member.id
        assert "Room: 101" in ticket.description
        assert "Port 4 dead" in ticket.description
        assert attendance.ticket_id == ticket.id

    def test_no_ticket_unless_requested(self, db, member, schedule):
        _, ticket = record_attendance(db, member, sign_in(schedule.id, ups=False))
        assert ticket is None
        assert db.query(Ticket).count() == 0

    def test_no_ticket_without_ticket_permission(self, db, guest, schedule):
        attendance, ticket = record_attendance(db, guest, sign_in(schedule.id, ups=False), create_ticket_on_issue=True)
        assert ticket is None
        assert db.query(Attendance).count() == 1

    def test_unknown_schedule(self, db, member):
        with pytest.raises(NotFoundError):
            record_attendance(db, member, sign_in(uuid.uuid4()))
        assert db.query(Attendance).count() == 0

    def test_list_filters_and_pages(self, db, member, schedule, facility, technician):
        other = Schedule(
            title="Office hours", day_of_week="friday", start_time=time(8, 0), end_time=time(9, 0),
            user_id=technician.id, room_id=facility["room_b"].id,
        )
        db.add(other)
        db.commit()
        for _ in range(3):
            record_attendance(db, member, sign_in(schedule.id))
        record_attendance(db, member, sign_in(other.id))

        rows, total = list_attendance(db, schedule_id=schedule.id, page=1, limit=2)
        assert total == 3
        assert len(rows) == 2
        assert all(r.schedule_id == schedule.id for r in rows)

        rows, total = list_attendance(db, start_date=datetime.utcnow() + timedelta(days=1))
        assert (rows, total) == ([], 0)

    def test_deleting_schedule_removes_attendance(self, db, member, schedule):
        record_attendance(db, member, sign_in(schedule.id))
        db.delete(schedule)
        db.commit()
        assert db.query(Attendance).count() == 0


@pytest.mark.integration
class TestAttendanceApi:
    """Attendance endpoints"""

    def payload(self, schedule, **overrides):
        body = sign_in(str(schedule.id), **overrides)
        body.pop("description")
        return body

    def test_submit_with_ticket(self, client, member, schedule, auth_headers):
        response = client.post(
            "/attendance", json=self.payload(schedule, system_unit=False, create_ticket=True),
            headers=auth_headers(member),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["ticket_id"] is not None
        assert body["attendance"]["missing_equipment"] == ["System Unit"]

        ticket = client.get(f"/tickets/{body['ticket_id']}", headers=auth_headers(member))
        assert ticket.status_code == 200
        assert ticket.json()["title"].startswith("Equipment Issue: System Unit")

    def test_invalid_email_rejected(self, client, member, schedule, auth_headers):
        response = client.post("/attendance", json=self.payload(schedule, email="not-an-email"), headers=auth_headers(member))
        assert response.status_code == 422

    def test_unknown_schedule_is_404(self, client, member, auth_headers):
        body = sign_in(str(uuid.uuid4()))
        response = client.post("/attendance", json=body, headers=auth_headers(member))
        assert response.status_code == 404
        assert response.json() == {"detail": "Schedule not found"}

    def test_requires_authentication(self, client, schedule):
        assert client.post("/attendance", json=self.payload(schedule)).status_code == 401

    def test_list_page(self, client, member, technician, schedule, auth_headers):
        for _ in range(3):
            client.post("/attendance", json=self.payload(schedule), headers=auth_headers(member))

        body = client.get(
            "/attendance", params={"schedule_id": str(schedule.id), "limit": 2}, headers=auth_headers(technician),
        ).json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert len(body["items"]) == 2
        item = body["items"][0]
        assert item["schedule"]["title"] == "Intro to Networking"
        assert item["schedule"]["room"]["number"] == "101"
        assert item["schedule"]["user"]["first_name"] == "Tess"

    def test_guest_cannot_list(self, client, guest, auth_headers):
        assert client.get("/attendance", headers=auth_headers(guest)).status_code == 403
