import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.errors import SaveFailedError
from app.schemas import WEEKDAYS, DayWindow, UnitSchedule
from app.services.remote_source import RemoteDataSource

logger = logging.getLogger(__name__)

EDITOR_DEFAULT_WINDOW = DayWindow(open="07:00", close="18:00")


def editor_rows(unit: Optional[UnitSchedule]) -> List[Dict[str, str]]:
    """Seven editor rows, Monday..Sunday; missing days get the editor default."""
    days = unit.days if unit is not None else {}
    rows = []
    for day in WEEKDAYS:
        window = days.get(day, EDITOR_DEFAULT_WINDOW)
        rows.append({"day": day, "open": window.open, "close": window.close})
    return rows


class HoursChangeSet:
    """Edits made in the hours editor, keyed so a later edit of a day wins."""

    def __init__(self):
        self._changes: Dict[str, Dict[str, str]] = {}

    def track(self, day: str, open_time: str, close_time: str) -> None:
        if day not in WEEKDAYS:
            raise ValueError(f"Unknown day: {day}")
        self._changes[f"hours-{day}"] = {"open": open_time, "close": close_time}

    @property
    def is_empty(self) -> bool:
        return not self._changes

    def clear(self) -> None:
        self._changes.clear()

    def build_payload(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        hours = {key.replace("hours-", "", 1): value for key, value in self._changes.items()}
        return {
            "items": list(self._changes.values()),
            "settings": {},
            "hours": hours,
            "timestamp": now.isoformat(),
        }


def save_changes(changes: HoursChangeSet, source: RemoteDataSource, admin_token: str,
                 endpoint: Optional[str] = None) -> bool:
    """POST the tracked changes; returns False when there was nothing to send."""
    if changes.is_empty:
        logger.info("No hours changes to save")
        return False

    response = source.fetch(endpoint or source.admin_save_endpoint, {
        "method": "POST",
        "body": changes.build_payload(),
        "headers": {"x-admin-token": admin_token},
    })
    if not isinstance(response, dict) or not response.get("success"):
        message = response.get("message") if isinstance(response, dict) else None
        raise SaveFailedError(message or "Save failed")

    logger.info("Saved hours changes")
    changes.clear()
    return True
