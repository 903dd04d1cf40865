"""Today/tomorrow window resolution in Seattle local time."""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from processor.models import TimeWindow

# Loaded at import; a missing zone database fails the cold start.
SEATTLE_TZ = ZoneInfo('America/Los_Angeles')

LOCAL_DATE_FORMAT = '%Y-%m-%d'


def to_local(instant: datetime) -> datetime:
    """Convert an instant to Seattle time, treating naive values as already local."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=SEATTLE_TZ)
    return instant.astimezone(SEATTLE_TZ)


def beginning_of_day(instant: datetime) -> datetime:
    local = to_local(instant)
    return datetime(local.year, local.month, local.day, tzinfo=SEATTLE_TZ)


def resolve_date(day: date) -> TimeWindow:
    """
    Build the window whose "today" is the given calendar date.

    Args:
        day: Local calendar date to treat as today

    Returns:
        TimeWindow with both ends at Seattle midnight
    """
    today = datetime(day.year, day.month, day.day, tzinfo=SEATTLE_TZ)
    next_day = day + timedelta(days=1)
    tomorrow = datetime(next_day.year, next_day.month, next_day.day, tzinfo=SEATTLE_TZ)
    return TimeWindow(today=today, tomorrow=tomorrow)


def resolve(reference: datetime) -> TimeWindow:
    """
    Resolve the today/tomorrow window for a reference instant.

    Tomorrow is one calendar day after today, not 24 hours, so the window
    stays correct across daylight saving transitions.

    Args:
        reference: Any instant; naive values are read as Seattle local time

    Returns:
        TimeWindow for the Seattle calendar day containing the reference
    """
    return resolve_date(to_local(reference).date())


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD backfill date."""
    return datetime.strptime(value.strip(), LOCAL_DATE_FORMAT).date()


def format_local_time(instant: datetime) -> str:
    """Format an instant as a Seattle clock time such as '7:05 PM'."""
    return to_local(instant).strftime('%I:%M %p').lstrip('0')
