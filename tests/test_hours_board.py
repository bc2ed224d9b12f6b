from sqlalchemy.exc import OperationalError

from app.models import BusinessHours, UnitAdvisory
from app.schemas import DayWindow, UnitSchedule, UnitStatus, parse_schedule
from app.services.hours_service import (
    BADGE_CLOSED,
    BADGE_OPEN,
    HoursBoard,
    load_schedule,
    save_schedule,
)
from tests.conftest import SAMPLE_HOURS


def _board(source, clock, session_factory):
    return HoursBoard(source, clock, session_factory=session_factory)


def test_refresh_loads_and_evaluates(source, clock, session_factory):
    board = _board(source, clock, session_factory)
    assert board.refresh() is True
    assert list(board.schedule) == list(SAMPLE_HOURS)
    assert board.status == {
        "restaurant": UnitStatus.OPEN,
        "service_bay": UnitStatus.CLOSED,
        "car_wash": UnitStatus.CLOSED,
        "bakery": UnitStatus.OPEN,
    }


def test_tick_follows_clock(source, clock, session_factory):
    board = _board(source, clock, session_factory)
    board.refresh()
    clock.advance(60)  # Monday 08:00
    assert board.tick()["service_bay"] == UnitStatus.OPEN
    clock.advance(15 * 60)  # Monday 23:00
    assert board.tick()["restaurant"] == UnitStatus.CLOSED


def test_tick_without_schedule(source, clock, session_factory):
    assert _board(source, clock, session_factory).tick() == {}


def test_refresh_failure_falls_back_to_cache(source, webhook, clock, session_factory):
    db = session_factory()
    save_schedule(db, parse_schedule({"restaurant": {"default": {"open": "06:00", "close": "23:00"}}}))
    db.close()

    webhook.hours_response = (503, {"text": "down"})
    board = _board(source, clock, session_factory)
    assert board.refresh() is False
    assert list(board.schedule) == ["restaurant"]
    assert board.status == {"restaurant": UnitStatus.OPEN}


def test_refresh_failure_keeps_current_schedule(source, webhook, clock, session_factory):
    board = _board(source, clock, session_factory)
    board.refresh()
    current = board.schedule
    webhook.hours_response = (200, {"json": {"unexpected": True}})
    assert board.refresh() is False
    assert board.schedule is current


def test_refresh_failure_with_empty_cache(source, webhook, clock, session_factory):
    webhook.hours_response = (500, {"text": "boom"})
    board = _board(source, clock, session_factory)
    assert board.refresh() is False
    assert board.schedule is None
    assert board.snapshot() is None


def test_refresh_replaces_reference(source, webhook, clock, session_factory):
    board = _board(source, clock, session_factory)
    board.refresh()
    first = board.schedule
    webhook.hours_response = (200, {"json": {"hours": {"car_wash": {}}}})
    board.refresh()
    assert board.schedule is not first
    assert list(first) == list(SAMPLE_HOURS)
    assert list(board.schedule) == ["car_wash"]


def test_snapshot_cards(source, clock, session_factory):
    board = _board(source, clock, session_factory)
    board.refresh()
    cards = {card.unit_id: card for card in board.snapshot()}
    # bakery is not an allow-listed unit
    assert list(cards) == ["restaurant", "service_bay", "car_wash"]
    assert cards["restaurant"].badge == BADGE_OPEN
    assert cards["restaurant"].lines == ["Mon 07:00 - 22:00"]
    assert cards["service_bay"].badge == BADGE_CLOSED
    assert cards["service_bay"].lines == [
        "Mon 08:00 - 17:00",
        "Tue 08:00 - 17:00",
        "24/7 Emergency: 24/7 on-call",
    ]
    assert cards["car_wash"].label == "Car Wash"
    assert cards["car_wash"].lines == ["Mon 09:00 - 09:00"]


def test_cache_round_trip_preserves_order(session_factory):
    schedule = parse_schedule({
        "supermarket": {"emergency": "Closed on public holidays"},
        "restaurant": {"Monday": {"open": "07:00", "close": "22:00"}},
        "car_wash": {},
    })
    db = session_factory()
    try:
        save_schedule(db, schedule)
        assert load_schedule(db) == schedule
        save_schedule(db, {"restaurant": UnitSchedule(days={"default": DayWindow("08:00", "20:00")})})
        assert db.query(BusinessHours).count() == 1
        assert db.query(UnitAdvisory).count() == 0
    finally:
        db.close()


def test_load_schedule_empty(session_factory):
    db = session_factory()
    try:
        assert load_schedule(db) is None
    finally:
        db.close()


class _LockedSession:
    def __init__(self):
        self.rolled_back = False
        self.closed = False

    def query(self, *args):
        raise OperationalError("DELETE FROM business_hours", {}, Exception("database is locked"))

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


def test_cache_write_failure_keeps_fresh_schedule(source, clock):
    sessions = []

    def locked_factory():
        sessions.append(_LockedSession())
        return sessions[-1]

    board = _board(source, clock, locked_factory)
    assert board.refresh() is True
    assert list(board.schedule) == list(SAMPLE_HOURS)
    assert board.status["restaurant"] == UnitStatus.OPEN
    assert sessions[0].rolled_back and sessions[0].closed


def test_cache_unreachable_on_failed_refresh(source, webhook, clock):
    def broken_factory():
        raise OperationalError("connect", {}, Exception("unable to open database file"))

    webhook.hours_response = (503, {"text": "down"})
    board = _board(source, clock, broken_factory)
    assert board.refresh() is False
    assert board.schedule is None
    assert board.status == {}
