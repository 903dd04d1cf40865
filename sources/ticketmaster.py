"""Ticketmaster Discovery API source for events at tracked Seattle venues."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import requests

from processor.errors import RateLimiterError, SourceDataError
from processor.models import Event, FreeformEvent, StructuredGame, TimeWindow, TODAY, TOMORROW
from processor.time_window import SEATTLE_TZ, beginning_of_day, format_local_time, parse_date
from sources.base import EventSource, FetchResult
from sources.http import DEFAULT_TIMEOUT, check_cancelled, get_json
from sources.rate_limiter import TokenBucketLimiter

logger = logging.getLogger(__name__)

TICKETMASTER_EVENT_SEARCH_API = 'https://app.ticketmaster.com/discovery/v2/events'

SEGMENT_ID_SPORTS = 'KZFzniwnSyZfZ7v7nE'
SUBTYPE_ID_TOURING_FACILITY = 'KZFzBErXgnZfZ7vAvv'

ATTRACTION_ID_KRAKEN = 'K8vZ917_vgV'
ATTRACTION_ID_SEAHAWKS = 'K8vZ9171oU7'
ATTRACTION_ID_MARINERS = 'K8vZ9171o6f'
ATTRACTION_ID_SOUNDERS = 'K8vZ917G8RV'
ATTRACTION_ID_REIGN = 'K8vZ9178Dm7'
ATTRACTION_ID_STORM = 'K8vZ9171xo0'
ATTRACTION_ID_KRAKEN_FAN_FEST = 'K8vZ917bJC7'

# Venue name -> Ticketmaster venue ID
SEATTLE_VENUES = {
    'Climate Pledge Arena': 'KovZ917Ahkk',
    'Lumen Field': 'KovZpZAEknnA',
    'T-Mobile Park': 'KovZpZAEevAA',
    'WAMU Theater': 'KovZpZAFFE7A',
}

# Attraction ID -> display name for the Seattle teams we recognize
SEATTLE_TEAM_ATTRACTION_IDS = {
    ATTRACTION_ID_KRAKEN: 'Seattle Kraken',
    ATTRACTION_ID_SEAHAWKS: 'Seattle Seahawks',
    ATTRACTION_ID_MARINERS: 'Seattle Mariners',
    ATTRACTION_ID_SOUNDERS: 'Seattle Sounders',
    ATTRACTION_ID_REIGN: 'Seattle Reign',
    ATTRACTION_ID_STORM: 'Seattle Storm',
}

IGNORED_ATTRACTION_IDS = frozenset({ATTRACTION_ID_KRAKEN_FAN_FEST})
IGNORED_SUBTYPE_IDS = frozenset({SUBTYPE_ID_TOURING_FACILITY})

OPPONENT_NAME_SUFFIXES = (' (Visitor)',)
UNKNOWN_OPPONENT = 'some unknown opponent'
TIME_TBA = 'TBA'

ApiKeyProvider = Callable[[], Optional[str]]


def _venue_name(event: Mapping[str, Any]) -> str:
    venues = (event.get('_embedded') or {}).get('venues') or []
    return venues[0].get('name', '') if venues else ''


def _attractions(event: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return (event.get('_embedded') or {}).get('attractions') or []


def _is_sports(classification: Mapping[str, Any]) -> bool:
    segment = classification.get('segment') or {}
    return segment.get('id') == SEGMENT_ID_SPORTS or segment.get('name') == 'Sports'


def event_should_be_ignored(
    event: Mapping[str, Any],
    ignored_subtype_ids: FrozenSet[str] = IGNORED_SUBTYPE_IDS,
    ignored_attraction_ids: FrozenSet[str] = IGNORED_ATTRACTION_IDS
) -> bool:
    """
    Decide whether a raw Ticketmaster event is noise.

    Rules run in order and the first match wins: cancelled, unclassified,
    sports listing with fewer than two attractions, ignored subtype (facility
    tours), ignored attraction, and finally date TBD/TBA.

    Args:
        event: Raw event from the search response
        ignored_subtype_ids: Classification subtypes to drop
        ignored_attraction_ids: Attractions whose events are dropped

    Returns:
        True if the event should be skipped
    """
    log_extra = {'event_name': event.get('name', ''), 'venue': _venue_name(event)}
    dates = event.get('dates') or {}
    start = dates.get('start') or {}

    if (dates.get('status') or {}).get('code') == 'cancelled':
        logger.info("Event is cancelled", extra=log_extra)
        return True

    classifications = event.get('classifications') or []
    if not classifications:
        logger.info("Event has no classifications", extra=log_extra)
        return True

    attractions = _attractions(event)
    if _is_sports(classifications[0]) and len(attractions) < 2:
        logger.info(f"Sports event has {len(attractions)} attraction(s)", extra=log_extra)
        return True

    if (classifications[0].get('subType') or {}).get('id') in ignored_subtype_ids:
        logger.info("Event subtype is ignored", extra=log_extra)
        return True

    for attraction in attractions:
        if attraction.get('id') in ignored_attraction_ids:
            logger.info(f"Attraction {attraction.get('id')} is ignored", extra=log_extra)
            return True

    if start.get('dateTBD') or start.get('dateTBA'):
        logger.info("Event date is TBD", extra=log_extra)
        return True

    return False


def strip_opponent_suffix(name: str) -> str:
    for suffix in OPPONENT_NAME_SUFFIXES:
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return name


def resolve_start(event: Mapping[str, Any]) -> Tuple[datetime, str]:
    """
    Work out when an event starts and how to display it.

    Time-TBA events with a known date are pinned to local noon so they sort
    deterministically, and display as "TBA".

    Returns:
        Tuple of (timezone-aware start, display time)

    Raises:
        ValueError: If no usable start can be found
    """
    start = (event.get('dates') or {}).get('start') or {}

    if start.get('timeTBA') and not start.get('dateTBD'):
        day = parse_date(start.get('localDate') or '')
        return datetime(day.year, day.month, day.day, 12, tzinfo=SEATTLE_TZ), TIME_TBA

    if start.get('dateTime'):
        instant = datetime.fromisoformat(start['dateTime'].replace('Z', '+00:00'))
    elif start.get('localDate') and start.get('localTime'):
        instant = datetime.strptime(
            f"{start['localDate']} {start['localTime']}", '%Y-%m-%d %H:%M:%S'
        ).replace(tzinfo=SEATTLE_TZ)
    else:
        raise ValueError("event has no start time")

    return instant, format_local_time(instant)


def build_event(
    event: Mapping[str, Any],
    venue_name: str,
    team_attraction_ids: Mapping[str, str] = SEATTLE_TEAM_ATTRACTION_IDS
) -> Tuple[datetime, Event]:
    """
    Turn a raw Ticketmaster event into a game or a freeform event.

    Args:
        event: Raw event that passed event_should_be_ignored
        venue_name: Tracked venue the event was found at
        team_attraction_ids: Known Seattle team attractions

    Returns:
        Tuple of (start, event)

    Raises:
        ValueError: If the start time cannot be resolved
    """
    start, display_time = resolve_start(event)
    raw_time = int(start.timestamp())
    attractions = _attractions(event)

    team_name = next(
        (team_attraction_ids[a['id']] for a in attractions if a.get('id') in team_attraction_ids),
        None
    )
    if team_name is None:
        return start, FreeformEvent(
            description=f"{event.get('name', '')} is at {venue_name}. It starts at {display_time}",
            raw_time=raw_time,
            venue=venue_name
        )

    # Assumes a match has exactly two attractions, which held for every league so far.
    opponent = next(
        (
            strip_opponent_suffix(a.get('name', ''))
            for a in attractions
            if a.get('id') not in team_attraction_ids and a.get('name')
        ),
        ''
    )
    if not opponent:
        logger.warning("Could not find opponent attraction", extra={'venue': venue_name, 'seattle_team': team_name})
        opponent = UNKNOWN_OPPONENT

    return start, StructuredGame(
        team_name=team_name,
        opponent=opponent,
        venue=venue_name,
        local_time=display_time,
        raw_time=raw_time
    )


class TicketmasterSource(EventSource):
    """Searches Ticketmaster for events at each tracked venue, one venue at a time."""

    name = 'ticketmaster'

    def __init__(
        self,
        api_key_provider: ApiKeyProvider,
        venues: Optional[Mapping[str, str]] = None,
        team_attraction_ids: Optional[Mapping[str, str]] = None,
        covered_attraction_ids: Iterable[str] = (),
        ignored_attraction_ids: Iterable[str] = IGNORED_ATTRACTION_IDS,
        ignored_subtype_ids: Iterable[str] = IGNORED_SUBTYPE_IDS,
        limiter=None,
        base_url: str = TICKETMASTER_EVENT_SEARCH_API,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT
    ):
        """
        Initialize the Ticketmaster source.

        Args:
            api_key_provider: Returns the API key, or None when the source is disabled
            venues: Venue name -> Ticketmaster venue ID
            team_attraction_ids: Attraction ID -> Seattle team name
            covered_attraction_ids: Teams reported by another source, skipped here
            ignored_attraction_ids: Promotional listings to skip
            ignored_subtype_ids: Classification subtypes to skip
            limiter: Object with wait(cancelled); defaults to 4 requests/second
            base_url: Event search endpoint
            session: Optional requests session
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.api_key_provider = api_key_provider
        self.venues = dict(SEATTLE_VENUES if venues is None else venues)
        self.team_attraction_ids = dict(
            SEATTLE_TEAM_ATTRACTION_IDS if team_attraction_ids is None else team_attraction_ids
        )
        self.covered_attraction_ids = frozenset(covered_attraction_ids)
        self.ignored_attraction_ids = frozenset(ignored_attraction_ids) | self.covered_attraction_ids
        self.ignored_subtype_ids = frozenset(ignored_subtype_ids)
        self.limiter = limiter or TokenBucketLimiter(rate=4, burst=1)
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def should_ignore(self, event: Mapping[str, Any]) -> bool:
        return event_should_be_ignored(event, self.ignored_subtype_ids, self.ignored_attraction_ids)

    def fetch(self, window: TimeWindow, cancelled: Optional[threading.Event] = None) -> FetchResult:
        api_key = self.api_key_provider()
        if not api_key:
            logger.warning("No Ticketmaster API key configured, not querying Ticketmaster")
            return [], []

        search_start = beginning_of_day(window.today)
        end_day = search_start.date() + timedelta(days=2)
        search_end = datetime(end_day.year, end_day.month, end_day.day, tzinfo=SEATTLE_TZ)

        today = []
        tomorrow = []
        for venue_name, venue_id in self.venues.items():
            check_cancelled(cancelled, self.name)

            found_today, found_tomorrow = self._events_for_venue(
                api_key, venue_name, venue_id, search_start, search_end, window, cancelled
            )
            today.extend(found_today)
            tomorrow.extend(found_tomorrow)

            try:
                self.limiter.wait(cancelled)
            except RateLimiterError as e:
                logger.error(f"Could not wait for Ticketmaster rate limiter: {e}")

        return today, tomorrow

    def _events_for_venue(
        self,
        api_key: str,
        venue_name: str,
        venue_id: str,
        search_start: datetime,
        search_end: datetime,
        window: TimeWindow,
        cancelled: Optional[threading.Event]
    ) -> FetchResult:
        params = {
            'venueId': venue_id,
            'apikey': api_key,
            'startDateTime': search_start.isoformat(),
            'endDateTime': search_end.isoformat(),
        }
        payload, response = get_json(
            self.session,
            self.base_url,
            f"ticketmaster: {venue_name}",
            params=params,
            timeout=self.timeout,
            cancelled=cancelled
        )

        logger.info(
            "Completed Ticketmaster API request",
            extra={
                'venue': venue_name,
                'remaining_requests': response.headers.get('Rate-Limit-Available'),
                'rate_limit_reset_time': response.headers.get('Rate-Limit-Reset'),
            }
        )

        if not isinstance(payload, dict):
            raise SourceDataError(f"ticketmaster: {venue_name}: unexpected response payload")

        today = []
        tomorrow = []
        for raw in (payload.get('_embedded') or {}).get('events') or []:
            if self.should_ignore(raw):
                logger.info("Ignoring event", extra={'venue': venue_name, 'event_name': raw.get('name', '')})
                continue

            try:
                start, event = build_event(raw, venue_name, self.team_attraction_ids)
            except (KeyError, ValueError) as e:
                logger.error(
                    f"Could not build event: {e}",
                    extra={'venue': venue_name, 'event_name': raw.get('name', '')}
                )
                continue

            bucket = window.classify(start)
            if bucket == TODAY:
                today.append(event)
            elif bucket == TOMORROW:
                tomorrow.append(event)
            else:
                continue
            logger.info(
                f"Found event from Ticketmaster for {bucket}",
                extra={'venue': venue_name, 'event_name': raw.get('name', '')}
            )

        return today, tomorrow
