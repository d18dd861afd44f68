"""
Meeting time helpers.

Meeting times are stored as 12-hour clock strings ("9:00 AM", "2:30 PM").
Every place that does arithmetic or ordering on them goes through
`parse_meeting_time` so calendar events, emails and listings agree.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

TIME_12H_PATTERN = re.compile(r"^\s*(\d{1,2}):([0-5]\d)\s*([AaPp][Mm])\s*$")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store keeps naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_meeting_time(value: str) -> tuple[int, int]:
    """
    Convert a 12-hour clock string to a 24-hour (hour, minute) pair.

    An hour token of 12 counts as 0 before the PM offset is applied, so
    "12:00 AM" is midnight and "12:00 PM" is noon.

    Raises:
        ValueError: If the string is not an "H:MM AM/PM" time
    """
    match = TIME_12H_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected format like '2:00 PM'")

    hour = int(match.group(1))
    minute = int(match.group(2))
    suffix = match.group(3).upper()

    if hour < 1 or hour > 12:
        raise ValueError(f"Invalid hour in time '{value}'")

    if hour == 12:
        hour = 0
    if suffix == "PM":
        hour += 12

    return hour, minute


def normalize_meeting_time(value: str) -> str:
    """Canonical 12-hour form: no leading zero, single space, upper-case suffix"""
    hour, minute = parse_meeting_time(value)
    return format_12_hour(hour, minute)


def to_24_hour(value: str) -> str:
    hour, minute = parse_meeting_time(value)
    return f"{hour:02d}:{minute:02d}"


def format_12_hour(hour: int, minute: int) -> str:
    period = "AM" if hour < 12 else "PM"
    display_hour = hour if hour <= 12 else hour - 12
    if display_hour == 0:
        display_hour = 12
    return f"{display_hour}:{minute:02d} {period}"


def meeting_start(meeting_date: date, meeting_time: str) -> datetime:
    hour, minute = parse_meeting_time(meeting_time)
    return datetime.combine(meeting_date, time(hour, minute))


def meeting_end(meeting_date: date, meeting_time: str, duration_minutes: int) -> datetime:
    return meeting_start(meeting_date, meeting_time) + timedelta(minutes=duration_minutes)


def parse_meeting_date(value) -> date:
    """Accept a date, a datetime or an ISO string ("2025-03-14" or a full timestamp)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")
    return date.fromisoformat(value[:10])


def parse_instant(value) -> Optional[datetime]:
    """
    Parse an ISO date or datetime into naive UTC.

    A bare date ("2025-03-14") means midnight UTC of that day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid date '{value}', expected ISO 8601") from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
