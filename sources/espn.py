"""ESPN scoreboard and team schedule sources."""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests

from processor.errors import SourceDataError
from processor.models import Event, StructuredGame, TimeWindow, TODAY
from processor.time_window import format_local_time
from sources.base import EventSource, FetchResult
from sources.http import DEFAULT_TIMEOUT, get_json

logger = logging.getLogger(__name__)

ESPN_DATE_FORMAT = '%Y-%m-%dT%H:%MZ'
STATUS_CANCELED = 'STATUS_CANCELED'

Classified = Tuple[str, Event]


@dataclass(frozen=True)
class ScoreboardQuery:
    """A league scoreboard, filtered to home games of one team abbreviation."""
    url: str
    team_name: str
    abbreviation: str

    def normalize(self, payload: Any, window: TimeWindow) -> List[Classified]:
        return normalize_scoreboard(payload, self, window)


@dataclass(frozen=True)
class TeamScheduleQuery:
    """A single team's upcoming schedule, filtered to games at its home venue."""
    url: str
    team_name: str
    home_venue: str

    def normalize(self, payload: Any, window: TimeWindow) -> List[Classified]:
        return normalize_team_schedule(payload, self, window)


EspnQuery = Union[ScoreboardQuery, TeamScheduleQuery]


def parse_espn_time(value: Optional[str], team_name: str) -> datetime:
    """
    Parse ESPN's minute-resolution UTC timestamp (e.g. 2026-01-12T03:30Z).

    Raises:
        SourceDataError: If the value is missing or not in the expected format
    """
    if not value:
        raise SourceDataError(f"espn: {team_name}: game is missing a start time")
    try:
        return datetime.strptime(value, ESPN_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        logger.error(f"Could not parse start time '{value}'", extra={'seattle_team': team_name})
        raise SourceDataError(f"espn: {team_name}: could not parse start time: {e}") from e


def split_competitors(
    competitors: Sequence[Dict[str, Any]],
    team_name: str
) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """
    Find the home and away competitors using the explicit homeAway flag.

    Payload order is not trusted, only the flag is.

    Returns:
        Tuple of (home, away), or None if there are too few competitors

    Raises:
        SourceDataError: If no competitor is flagged as home
    """
    count = len(competitors)
    if count < 2:
        logger.info(f"Insufficient competitors ({count})", extra={'seattle_team': team_name})
        return None
    if count > 2:
        logger.warning(
            f"Unexpected number of competitors ({count}), only using home and one other",
            extra={'seattle_team': team_name}
        )

    home = next((c for c in competitors if c.get('homeAway') == 'home'), None)
    if home is None:
        raise SourceDataError(f"espn: {team_name}: no competitor is flagged as home")
    away = next(c for c in competitors if c is not home)
    return home, away


def _competition_status(competition: Dict[str, Any]) -> str:
    return ((competition.get('status') or {}).get('type') or {}).get('name', '')


def _opponent_name(away: Dict[str, Any], team_name: str) -> str:
    opponent = (away.get('team') or {}).get('displayName')
    if not opponent:
        raise SourceDataError(f"espn: {team_name}: opponent is missing a display name")
    return opponent


def normalize_scoreboard(payload: Any, query: ScoreboardQuery, window: TimeWindow) -> List[Classified]:
    """
    Normalize a league scoreboard into today/tomorrow home games.

    Args:
        payload: Decoded scoreboard JSON
        query: The team being looked for
        window: Today/tomorrow window

    Returns:
        List of (bucket, event) pairs

    Raises:
        SourceDataError: If the payload is missing required fields
    """
    if not isinstance(payload, dict) or not isinstance(payload.get('events'), list):
        raise SourceDataError(f"espn: {query.team_name}: scoreboard payload has no events list")

    found = []
    for event in payload['events']:
        competitions = event.get('competitions') or []
        if not competitions:
            logger.info("Scoreboard event has no competitions", extra={'seattle_team': query.team_name})
            continue
        competition = competitions[0]

        teams = split_competitors(competition.get('competitors') or [], query.team_name)
        if teams is None:
            continue
        home, away = teams

        abbreviation = (home.get('team') or {}).get('abbreviation')
        if not abbreviation:
            raise SourceDataError(f"espn: {query.team_name}: home competitor has no abbreviation")
        if abbreviation != query.abbreviation:
            continue

        start = parse_espn_time(
            competition.get('startDate') or competition.get('date') or event.get('date'),
            query.team_name
        )
        bucket = window.classify(start)
        if bucket is None:
            continue

        if _competition_status(competition) == STATUS_CANCELED:
            logger.info("Game is canceled", extra={'seattle_team': query.team_name})
            continue

        venue = (
            (competition.get('venue') or {}).get('fullName') or
            (event.get('venue') or {}).get('displayName')
        )
        if not venue:
            raise SourceDataError(f"espn: {query.team_name}: game has no venue")

        opponent = _opponent_name(away, query.team_name)
        logger.info(
            f"Found game for {bucket} against {opponent}",
            extra={'seattle_team': query.team_name}
        )
        found.append((bucket, StructuredGame(
            team_name=query.team_name,
            opponent=opponent,
            venue=venue,
            local_time=format_local_time(start),
            raw_time=int(start.timestamp())
        )))

    return found


def normalize_team_schedule(payload: Any, query: TeamScheduleQuery, window: TimeWindow) -> List[Classified]:
    """
    Normalize a team schedule into today/tomorrow games at the home venue.

    Games at any other venue (road games, neutral sites) are dropped.

    Args:
        payload: Decoded team JSON
        query: The team and its home venue
        window: Today/tomorrow window

    Returns:
        List of (bucket, event) pairs

    Raises:
        SourceDataError: If the team identity fields are missing or empty
    """
    team = payload.get('team') if isinstance(payload, dict) else None
    if not isinstance(team, dict) or not team.get('id') or not team.get('uid'):
        logger.error("Empty ESPN team payload", extra={'seattle_team': query.team_name, 'url': query.url})
        raise SourceDataError(f"espn: {query.team_name}: empty response payload")

    team_id = str(team['id'])
    found = []
    for event in team.get('nextEvent') or []:
        competitions = event.get('competitions') or []
        if not competitions:
            logger.info("No games found", extra={'seattle_team': query.team_name})
            continue
        competition = competitions[0]

        teams = split_competitors(competition.get('competitors') or [], query.team_name)
        if teams is None:
            continue
        home, away = teams

        if str(home.get('id', '')) != team_id:
            logger.info("Skipping road game", extra={'seattle_team': query.team_name})
            continue

        venue = (competition.get('venue') or {}).get('fullName', '')
        if venue != query.home_venue:
            logger.info(f"Skipping game at {venue or 'unknown venue'}", extra={'seattle_team': query.team_name})
            continue

        start = parse_espn_time(competition.get('date'), query.team_name)
        bucket = window.classify(start)
        if bucket is None:
            continue

        if _competition_status(competition) == STATUS_CANCELED:
            logger.info("Game is canceled", extra={'seattle_team': query.team_name})
            continue

        opponent = _opponent_name(away, query.team_name)
        logger.info(
            f"Found game for {bucket} against {opponent}",
            extra={'seattle_team': query.team_name}
        )
        found.append((bucket, StructuredGame(
            team_name=query.team_name,
            opponent=opponent,
            venue=venue,
            local_time=format_local_time(start),
            raw_time=int(start.timestamp())
        )))

    return found


class EspnSource(EventSource):
    """Runs a batch of ESPN queries one after another as a single source."""

    name = 'espn'

    def __init__(
        self,
        queries: Sequence[EspnQuery],
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT
    ):
        """
        Initialize the ESPN source.

        Args:
            queries: Scoreboard and team schedule queries to run
            session: Optional requests session (a new one is created if omitted)
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.queries = list(queries)
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, window: TimeWindow, cancelled: Optional[threading.Event] = None) -> FetchResult:
        today = []
        tomorrow = []

        for query in self.queries:
            logger.info("Querying ESPN", extra={'seattle_team': query.team_name, 'url': query.url})
            payload, _ = get_json(
                self.session,
                query.url,
                f"espn: {query.team_name}",
                timeout=self.timeout,
                cancelled=cancelled
            )
            for bucket, event in query.normalize(payload, window):
                if bucket == TODAY:
                    today.append(event)
                else:
                    tomorrow.append(event)

        return today, tomorrow
