"""
Current date/time in the operating time zone, and the relative dates
the assistant is told about so it never does date arithmetic itself.
"""
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from config import get_config

WEEKDAYS_PT = [
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
]

# keyword -> day offset; English names plus the Portuguese forms users type
RELATIVE_OFFSETS = {
    "today": 0,
    "hoje": 0,
    "tomorrow": 1,
    "amanhã": 1,
    "amanha": 1,
    "day-after-tomorrow": 2,
    "depois de amanhã": 2,
    "depois de amanha": 2,
    "next-week": 7,
    "próxima semana": 7,
    "proxima semana": 7,
}


class TemporalContext(BaseModel):
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    weekday: str
    formatted: str  # DD/MM/YYYY
    tomorrow: str
    day_after_tomorrow: str
    next_week: str


def current_datetime() -> datetime:
    """Wall-clock now in the configured time zone."""
    return datetime.now(ZoneInfo(get_config().timezone))


def relative_date(base: str, keyword: str) -> str:
    """
    Resolve a relative keyword against an ISO base date.

    Raises:
        ValueError: unknown keyword or malformed base date
    """
    try:
        offset = RELATIVE_OFFSETS[keyword.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown relative date keyword: {keyword!r}")
    return (date.fromisoformat(base) + timedelta(days=offset)).isoformat()


def get_temporal_context(now: Optional[datetime] = None) -> TemporalContext:
    """Snapshot "now" once; every date in the context derives from the same instant."""
    if now is None:
        now = current_datetime()
    today = now.date().isoformat()
    return TemporalContext(
        date=today,
        time=now.strftime("%H:%M"),
        weekday=WEEKDAYS_PT[now.weekday()],
        formatted=now.strftime("%d/%m/%Y"),
        tomorrow=relative_date(today, "tomorrow"),
        day_after_tomorrow=relative_date(today, "day-after-tomorrow"),
        next_week=relative_date(today, "next-week"),
    )
