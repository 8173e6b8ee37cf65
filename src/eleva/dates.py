"""Local-timezone date helpers.

Revisões são agendadas por dia de calendário. "Hoje" é sempre a data local
no fuso configurado, nunca a data UTC: no Brasil (UTC-3) às 21:00 já é o
dia seguinte em UTC, e uma revisão de hoje viraria atrasada antes da hora.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from .config import settings


def local_zone(tz: str | None = None) -> ZoneInfo:
    return ZoneInfo(tz or settings.timezone)


def local_today(now: datetime | None = None, tz: str | None = None) -> date:
    """Return today's calendar date in the configured timezone.

    `now` may be naive (interpreted as UTC) or aware; it is converted to the
    local zone before taking the date.
    """

    zone = local_zone(tz)
    if now is None:
        return datetime.now(zone).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(zone).date()


def format_local_date(value: date | datetime) -> str:
    """Format as `YYYY-MM-DD`; aware datetimes are converted to local time first."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(local_zone())
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_local_date(raw: str | date | datetime) -> date:
    """Parse a stored date into a local calendar date.

    Aceita `YYYY-MM-DD` (formato atual) e também timestamps ISO completos
    gravados por versões antigas (`2024-06-15T02:00:00.000Z`), que são
    convertidos para o dia local correspondente.
    """

    if isinstance(raw, datetime):
        return local_today(raw) if raw.tzinfo is not None else raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        raise ValueError("empty date string")
    if len(text) == 10:
        year, month, day = (int(part) for part in text.split("-"))
        return date(year, month, day)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.date()
    return local_today(parsed)


def add_days(base: date, days: int) -> date:
    return base + timedelta(days=days)


def local_tomorrow(now: datetime | None = None) -> date:
    return add_days(local_today(now), 1)


def local_yesterday(now: datetime | None = None) -> date:
    return add_days(local_today(now), -1)
