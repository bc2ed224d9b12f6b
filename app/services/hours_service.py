import logging
import re
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import InvalidScheduleError, NetworkError
from app.db import SessionLocal
from app.models import BusinessHours, UnitAdvisory
from app.schemas import (
    DEFAULT_DAY,
    WEEKDAYS,
    DayWindow,
    DisplayLine,
    HoursCard,
    Instant,
    UnitSchedule,
    UnitStatus,
    WeeklySchedule,
    parse_schedule,
)
from app.services.clock import Clock
from app.services.remote_source import RemoteDataSource

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")

# Renderer allow-list: unit_id -> (icon, label)
UNITS_CONFIG = {
    "restaurant": ("🍽️", "Restaurant"),
    "supermarket": ("🛒", "Supermarket"),
    "service_bay": ("🔧", "Service Bay"),
    "car_wash": ("💧", "Car Wash"),
}

BADGE_OPEN = "✓ Open Now"
BADGE_CLOSED = "✗ Closed"


# ---------- Evaluator ----------

def parse_time(value) -> Optional[int]:
    """'HH:MM' -> minutes since midnight, or None if malformed."""
    if not isinstance(value, str):
        return None
    m = _TIME_RE.fullmatch(value)
    if not m:
        return None
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return None
    return hh * 60 + mm


def _parse_window(window: Optional[DayWindow]):
    if window is None:
        return None
    open_min, close_min = parse_time(window.open), parse_time(window.close)
    if open_min is None or close_min is None:
        return None
    return open_min, close_min


def _unit(value) -> UnitSchedule:
    if isinstance(value, UnitSchedule):
        return value
    if isinstance(value, Mapping):
        return UnitSchedule.from_dict(value)
    return UnitSchedule()


def _check_schedule(schedule) -> None:
    if not isinstance(schedule, Mapping):
        raise InvalidScheduleError(f"schedule must be a mapping, got {type(schedule).__name__}")


def window_for(unit: UnitSchedule, weekday: str) -> Optional[DayWindow]:
    """Named weekday first, then the unit's 'default' entry.

    A named day whose times do not parse counts as absent.
    """
    window = unit.days.get(weekday)
    if _parse_window(window) is None:
        window = unit.days.get(DEFAULT_DAY)
    return window


def is_open(window: Optional[DayWindow], minutes: int) -> bool:
    parsed = _parse_window(window)
    if parsed is None:
        return False
    open_min, close_min = parsed
    # Overnight windows (open >= close) never report open
    if open_min >= close_min:
        return False
    return open_min <= minutes < close_min


def evaluate(schedule: WeeklySchedule, now: Union[Instant, datetime]) -> Dict[str, UnitStatus]:
    """Open/closed status for every unit in `schedule` at `now`.

    `now` is an Instant or a datetime already in the business's time zone.
    Missing or malformed day data makes that unit closed; only a schedule
    that is not a mapping raises InvalidScheduleError.
    """
    _check_schedule(schedule)
    instant = Instant.from_datetime(now) if isinstance(now, datetime) else now
    result = {}
    for unit_id, unit in schedule.items():
        window = window_for(_unit(unit), instant.weekday)
        result[unit_id] = UnitStatus.OPEN if is_open(window, instant.minutes) else UnitStatus.CLOSED
    return result


def describe(schedule: WeeklySchedule) -> Dict[str, List[DisplayLine]]:
    """Display lines per unit, Monday..Sunday, emergency line last."""
    _check_schedule(schedule)
    result = {}
    for unit_id, raw in schedule.items():
        unit = _unit(raw)
        lines = []
        for day in WEEKDAYS:
            window = unit.days.get(day)
            if _parse_window(window) is not None:
                lines.append(DisplayLine(day=day, open=window.open, close=window.close))
        if unit.emergency:
            lines.append(DisplayLine(emergency=True, text=unit.emergency))
        result[unit_id] = lines
    return result


def data_quality_issues(schedule: WeeklySchedule) -> List[str]:
    """Human-readable list of entries the evaluator will ignore."""
    _check_schedule(schedule)
    issues = []
    for unit_id, raw in schedule.items():
        if not isinstance(raw, (UnitSchedule, Mapping)):
            issues.append(f"{unit_id}: not an object")
            continue
        unit = _unit(raw)
        for day, window in unit.days.items():
            if _parse_window(window) is None:
                issues.append(f"{unit_id}/{day}: malformed time {window.open!r} - {window.close!r}")
        missing = [d for d in WEEKDAYS if d not in unit.days]
        if missing and DEFAULT_DAY not in unit.days:
            issues.append(f"{unit_id}: no hours for {', '.join(missing)}")
    return issues


# ---------- Cache (SQL) ----------

def save_schedule(db: Session, schedule: WeeklySchedule) -> None:
    """Replace the cached schedule with `schedule`."""
    db.query(BusinessHours).delete()
    db.query(UnitAdvisory).delete()
    for position, (unit_id, raw) in enumerate(schedule.items()):
        unit = _unit(raw)
        for day, window in unit.days.items():
            db.add(BusinessHours(
                unit_id=unit_id,
                position=position,
                day=day,
                open_time=window.open,
                close_time=window.close,
            ))
        # Placeholder row keeps units with no days and no advisory in the cache
        if unit.emergency or not unit.days:
            db.add(UnitAdvisory(unit_id=unit_id, position=position, emergency=unit.emergency))
    db.commit()


def load_schedule(db: Session) -> Optional[WeeklySchedule]:
    """Rebuild the cached schedule, or None if the cache is empty."""
    rows = db.query(BusinessHours).order_by(BusinessHours.position, BusinessHours.id).all()
    advisories = db.query(UnitAdvisory).order_by(UnitAdvisory.position, UnitAdvisory.id).all()
    if not rows and not advisories:
        return None

    units = {}
    for row in rows:
        entry = units.setdefault(row.unit_id, {"position": row.position, "days": {}, "emergency": None})
        entry["days"][row.day] = DayWindow(open=row.open_time, close=row.close_time)
    for adv in advisories:
        entry = units.setdefault(adv.unit_id, {"position": adv.position, "days": {}, "emergency": None})
        if adv.emergency:
            entry["emergency"] = adv.emergency

    ordered = sorted(units.items(), key=lambda kv: kv[1]["position"] or 0)
    return {
        unit_id: UnitSchedule(days=entry["days"], emergency=entry["emergency"])
        for unit_id, entry in ordered
    }


# ---------- Board ----------

class HoursBoard:
    """Holds the current schedule and its last evaluation.

    The schedule reference is replaced on every successful refresh and never
    mutated in place, so `tick()` from the scheduler thread can read it safely.
    """

    def __init__(self, source: RemoteDataSource, clock: Clock,
                 session_factory: Callable[[], Session] = SessionLocal):
        self.source = source
        self.clock = clock
        self.session_factory = session_factory
        self.schedule: Optional[WeeklySchedule] = None
        self.status: Dict[str, UnitStatus] = {}

    def refresh(self) -> bool:
        """Fetch a fresh schedule; fall back to the cache if nothing is loaded yet."""
        try:
            schedule = parse_schedule(self.source.fetch_hours())
        except (NetworkError, InvalidScheduleError) as e:
            logger.error("Error fetching hours: %s", e)
            if self.schedule is None:
                self._load_cached()
            self.tick()
            return False

        for issue in data_quality_issues(schedule):
            logger.warning("Hours data quality: %s", issue)

        self.schedule = schedule
        self._save_cached(schedule)
        logger.info("Fetched operating hours for %s units", len(schedule))
        self.tick()
        return True

    def _save_cached(self, schedule: WeeklySchedule) -> None:
        db = None
        try:
            db = self.session_factory()
            save_schedule(db, schedule)
        except SQLAlchemyError as e:
            if db is not None:
                db.rollback()
            logger.warning("Could not cache operating hours: %s", e)
        finally:
            if db is not None:
                db.close()

    def _load_cached(self) -> None:
        db = None
        try:
            db = self.session_factory()
            cached = load_schedule(db)
        except SQLAlchemyError as e:
            logger.warning("Could not read cached operating hours: %s", e)
            return
        finally:
            if db is not None:
                db.close()
        if cached is not None:
            logger.warning("Using cached operating hours (%s units)", len(cached))
            self.schedule = cached

    def tick(self) -> Dict[str, UnitStatus]:
        schedule = self.schedule
        if schedule is None:
            return {}
        self.status = evaluate(schedule, self.clock.now())
        return self.status

    def snapshot(self) -> Optional[List[HoursCard]]:
        """Cards for the allow-listed units, or None when no schedule is loaded."""
        schedule = self.schedule
        if schedule is None:
            return None
        status = evaluate(schedule, self.clock.now())
        lines = describe(schedule)
        cards = []
        for unit_id in schedule:
            if unit_id not in UNITS_CONFIG:
                continue
            icon, label = UNITS_CONFIG[unit_id]
            cards.append(HoursCard(
                unit_id=unit_id,
                label=label,
                icon=icon,
                status=status[unit_id],
                badge=BADGE_OPEN if status[unit_id] == UnitStatus.OPEN else BADGE_CLOSED,
                lines=[line.render() for line in lines[unit_id]],
            ))
        return cards
