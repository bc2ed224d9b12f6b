"""
Schedule types and boundary parsing for the `hours` document.

The webhook returns loosely-shaped JSON; `parse_schedule` turns it into the
typed structures below so the evaluator only deals with well-typed (if still
possibly absent or malformed) day windows.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from app.core.errors import InvalidScheduleError

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
DEFAULT_DAY = "default"


class UnitStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class DayWindow:
    open: str
    close: str


@dataclass(frozen=True)
class UnitSchedule:
    days: Dict[str, DayWindow] = field(default_factory=dict)
    emergency: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "UnitSchedule":
        days = {}
        for key, value in raw.items():
            if key not in WEEKDAYS and key != DEFAULT_DAY:
                continue
            window = _day_window(value)
            if window is not None:
                days[key] = window
        emergency = raw.get("emergency")
        if not isinstance(emergency, str) or not emergency.strip():
            emergency = None
        return cls(days=days, emergency=emergency)


# unit_id -> UnitSchedule, in document order
WeeklySchedule = Dict[str, UnitSchedule]


@dataclass(frozen=True)
class Instant:
    weekday: str
    minutes: int

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Instant":
        """Decompose an already-zoned datetime; no time zone conversion happens here."""
        return cls(weekday=WEEKDAYS[dt.weekday()], minutes=dt.hour * 60 + dt.minute)


@dataclass(frozen=True)
class DisplayLine:
    day: Optional[str] = None
    open: Optional[str] = None
    close: Optional[str] = None
    emergency: bool = False
    text: Optional[str] = None

    def render(self) -> str:
        if self.emergency:
            return f"24/7 Emergency: {self.text}"
        return f"{self.day[:3]} {self.open} - {self.close}"


def _day_window(value: Any) -> Optional[DayWindow]:
    if isinstance(value, DayWindow):
        return value
    if not isinstance(value, Mapping):
        return None
    open_, close = value.get("open"), value.get("close")
    if not isinstance(open_, str) or not isinstance(close, str):
        return None
    return DayWindow(open=open_, close=close)


def parse_schedule(raw: Any) -> WeeklySchedule:
    """Deserialize the `hours` object of the webhook response.

    Raises InvalidScheduleError if `raw` is not a mapping. A unit whose value
    is not an object is kept with no days so it still evaluates closed.
    """
    if not isinstance(raw, Mapping):
        raise InvalidScheduleError(f"hours must be an object, got {type(raw).__name__}")
    schedule: WeeklySchedule = {}
    for unit_id, unit in raw.items():
        if isinstance(unit, UnitSchedule):
            schedule[str(unit_id)] = unit
        elif isinstance(unit, Mapping):
            schedule[str(unit_id)] = UnitSchedule.from_dict(unit)
        else:
            schedule[str(unit_id)] = UnitSchedule()
    return schedule


# ---------- API response models ----------

class HoursCard(BaseModel):
    unit_id: str
    label: str
    icon: str
    status: UnitStatus
    badge: str
    lines: List[str]


class HoursResponse(BaseModel):
    units: List[HoursCard] = []
    message: Optional[str] = None


class DayChange(BaseModel):
    day: str
    open: str
    close: str


class HoursChangeRequest(BaseModel):
    changes: List[DayChange]


class LoginRequest(BaseModel):
    username: str
    password: str
