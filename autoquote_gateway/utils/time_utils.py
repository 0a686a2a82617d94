"""Clock helpers"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def add_days(from_time: datetime, days: int) -> datetime:
    return from_time + timedelta(days=days)


def clock_stamp(moment: datetime) -> str:
    """Format a timestamp as HH:MM:SS for operator-facing log lines"""
    return moment.strftime("%H:%M:%S")
