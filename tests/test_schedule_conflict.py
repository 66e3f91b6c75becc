"""
Tests for room schedule conflict detection
"""
from datetime import time

import pytest

from facilityhub.errors import ConflictError, ValidationError
from facilityhub.models.models import Schedule
from facilityhub.services.schedule_conflict import (
    ensure_no_conflict,
    get_conflicting_schedules,
    normalize_day,
    times_overlap,
)


@pytest.fixture
def booking(db, facility, member):
    """Monday 09:00-10:00 in room 101"""
    s = Schedule(
        title="Chemistry lab",
        day_of_week="monday",
        start_time=time(9, 0),
        end_time=time(10, 0),
        user_id=member.id,
        room_id=facility["room_a"].id,
    )
    db.add(s)
    db.commit()
    return s


@pytest.mark.unit
class TestTimesOverlap:
    """Half-open interval overlap"""

    @pytest.mark.parametrize("start,end,expected", [
        (time(9, 30), time(10, 30), True),
        (time(8, 0), time(9, 1), True),
        (time(9, 15), time(9, 45), True),
        (time(8, 0), time(11, 0), True),
        (time(10, 0), time(11, 0), False),
        (time(8, 0), time(9, 0), False),
        (time(11, 0), time(12, 0), False),
    ])
    def test_against_nine_to_ten(self, start, end, expected):
        assert times_overlap(start, end, time(9, 0), time(10, 0)) is expected

    def test_symmetry(self):
        a = (time(9, 0), time(10, 0))
        b = (time(9, 30), time(10, 30))
        assert times_overlap(*a, *b) == times_overlap(*b, *a)


@pytest.mark.unit
class TestConflictQueries:
    """Conflicts are scoped to room and day"""

    def test_overlapping_slot_conflicts(self, db, facility, booking):
        with pytest.raises(ConflictError):
            ensure_no_conflict(db, facility["room_a"].id, "monday", time(9, 30), time(10, 30))

    def test_adjacent_slot_is_free(self, db, facility, booking):
        ensure_no_conflict(db, facility["room_a"].id, "monday", time(10, 0), time(11, 0))

    def test_other_room_is_free(self, db, facility, booking):
        ensure_no_conflict(db, facility["room_b"].id, "monday", time(9, 30), time(10, 30))

    def test_other_day_is_free(self, db, facility, booking):
        ensure_no_conflict(db, facility["room_a"].id, "tuesday", time(9, 30), time(10, 30))

    def test_update_excludes_itself(self, db, facility, booking):
        ensure_no_conflict(
            db, facility["room_a"].id, "monday", time(9, 15), time(10, 15),
            exclude_schedule_id=booking.id,
        )

    def test_lists_conflicting_rows(self, db, facility, booking):
        found = get_conflicting_schedules(db, facility["room_a"].id, "monday", time(8, 0), time(12, 0))
        assert [s.id for s in found] == [booking.id]

    def test_end_before_start(self, db, facility):
        with pytest.raises(ValidationError) as exc:
            ensure_no_conflict(db, facility["room_a"].id, "monday", time(11, 0), time(10, 0))
        assert exc.value.field == "end_time"

    def test_zero_length_slot(self, db, facility):
        with pytest.raises(ValidationError):
            ensure_no_conflict(db, facility["room_a"].id, "monday", time(10, 0), time(10, 0))


@pytest.mark.unit
class TestNormalizeDay:
    def test_case_and_whitespace(self):
        assert normalize_day("  Monday ") == "monday"

    def test_sunday_rejected(self):
        with pytest.raises(ValidationError):
            normalize_day("sunday")
