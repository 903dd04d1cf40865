"""Data models for event aggregation."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

TODAY = 'today'
TOMORROW = 'tomorrow'


@dataclass(frozen=True)
class StructuredGame:
    """A home game for a tracked Seattle team."""
    team_name: str
    opponent: str
    venue: str
    local_time: str
    raw_time: int

    def __post_init__(self):
        for name in ('team_name', 'opponent', 'venue', 'local_time'):
            if not getattr(self, name):
                raise ValueError(f"StructuredGame requires a non-empty {name}")

    def describe(self) -> str:
        return (
            f"{self.team_name} are playing against the {self.opponent} at "
            f"{self.venue}. The game starts at {self.local_time}."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'description': self.describe(),
            'team_name': self.team_name,
            'opponent': self.opponent,
            'venue': self.venue,
            'local_time': self.local_time,
        }
        if self.raw_time:
            data['unix_time'] = self.raw_time
        return data

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class FreeformEvent:
    """An event with no team-versus-opponent framing, shown as plain text."""
    description: str
    raw_time: int
    venue: str = ''

    def __post_init__(self):
        if not self.description:
            raise ValueError("FreeformEvent requires a non-empty description")

    def describe(self) -> str:
        return self.description

    def to_dict(self) -> Dict[str, Any]:
        data = {'description': self.description}
        if self.venue:
            data['venue'] = self.venue
        if self.raw_time:
            data['unix_time'] = self.raw_time
        return data

    def __str__(self) -> str:
        return self.describe()


Event = Union[StructuredGame, FreeformEvent]


def is_day(target: datetime, specimen: datetime) -> bool:
    """Check whether specimen falls on target's calendar day, in target's zone."""
    local = specimen.astimezone(target.tzinfo)
    return (
        target.year == local.year and
        target.timetuple().tm_yday == local.timetuple().tm_yday
    )


@dataclass(frozen=True)
class TimeWindow:
    """Seattle midnights for the two days every source is evaluated against."""
    today: datetime
    tomorrow: datetime

    def classify(self, instant: datetime) -> Optional[str]:
        """
        Place an instant on today, tomorrow, or neither.

        Comparison is by year and day of year in the window's zone, so an
        event at 11:59 PM belongs to today and one at 12:00 AM to tomorrow.

        Args:
            instant: Timezone-aware event start

        Returns:
            TODAY, TOMORROW, or None for any other day
        """
        if is_day(self.today, instant):
            return TODAY
        if is_day(self.tomorrow, instant):
            return TOMORROW
        return None


@dataclass
class EventResults:
    """Accumulated events for today and tomorrow."""
    today: List[Event] = field(default_factory=list)
    tomorrow: List[Event] = field(default_factory=list)

    def extend(self, today: List[Event], tomorrow: List[Event]) -> None:
        self.today.extend(today)
        self.tomorrow.extend(tomorrow)

    @property
    def total(self) -> int:
        return len(self.today) + len(self.tomorrow)
