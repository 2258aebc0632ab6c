from datetime import datetime

from campusops.models import Booking, Event, Resource
from campusops.scheduling import build_rejection_reason, format_slot, is_auto_approved


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 1, 10, hour, minute)


def test_collide_counts_touching_endpoints():
    existing = Booking(start_time=at(10), end_time=at(12))
    assert existing.collides_with(at(12), at(13))
    assert existing.collides_with(at(11), at(13))
    assert not existing.collides_with(at(12, 1), at(13))


def test_overlap_is_strict():
    existing = Booking(start_time=at(10), end_time=at(12))
    assert not existing.overlaps(at(12), at(13))
    assert existing.overlaps(at(11), at(13))
    assert existing.overlaps(at(9), at(14))


def test_auto_approval_policy():
    assert is_auto_approved(Resource(name="Lab", auto_approve=True, requires_approval=True))
    assert is_auto_approved(Resource(name="Mic", auto_approve=False, requires_approval=False))
    assert not is_auto_approved(Resource(name="Hall", auto_approve=False, requires_approval=True))


def test_rejection_reason_defaults_when_nothing_to_say():
    assert build_rejection_reason(None, []) == "Not specified"
    assert build_rejection_reason("   ", []) == "Not specified"
    assert build_rejection_reason("  Too loud  ", []) == "Too loud"


def test_rejection_reason_cites_conflicts():
    other = Booking(start_time=at(10), end_time=at(12))
    event = Event(title="Hackathon")
    reason = build_rejection_reason("Double booked.", [(other, event)])
    assert reason == (
        "Double booked. Conflicts with approved bookings: Hackathon (2026-01-10 10:00 - 12:00)"
    )
    assert build_rejection_reason("", [(other, event)]).startswith("Conflicts with approved bookings")


def test_format_slot_spanning_days():
    assert format_slot(at(22), datetime(2026, 1, 11, 2)) == "2026-01-10 22:00 - 2026-01-11 02:00"
