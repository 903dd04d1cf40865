"""The fixed set of sources that make up a day's aggregation."""
import logging
import os
from typing import List, Optional

from botocore.exceptions import ClientError

from processor.errors import SecretNotFoundError, SourceTransportError
from sources.base import EventSource
from sources.espn import EspnSource, ScoreboardQuery, TeamScheduleQuery
from sources.http import DEFAULT_TIMEOUT
from sources.ticketmaster import (
    ATTRACTION_ID_SEAHAWKS,
    ATTRACTION_ID_SOUNDERS,
    ApiKeyProvider,
    TicketmasterSource,
)
from storage.secrets import SecretsClient
from storage.special_events import SpecialEventsSource, SpecialEventsStore

logger = logging.getLogger(__name__)

TICKETMASTER_SECRET_ENV_VAR = 'TICKETMASTER_API_KEY_SECRET_NAME'
SPECIAL_EVENTS_TABLE_ENV_VAR = 'SPECIAL_EVENTS_TABLE_NAME'

ESPN_SITE_API = 'https://site.api.espn.com/apis/site/v2/sports'

HUSKY_STADIUM = 'Husky Stadium'
ALASKA_AIRLINES_ARENA = 'Alaska Airlines Arena'

ESPN_QUERIES = [
    ScoreboardQuery(f"{ESPN_SITE_API}/football/nfl/scoreboard", 'Seattle Seahawks', 'SEA'),
    ScoreboardQuery(f"{ESPN_SITE_API}/soccer/usa.1/scoreboard", 'Seattle Sounders', 'SEA'),
    ScoreboardQuery(f"{ESPN_SITE_API}/soccer/concacaf.leagues.cup/scoreboard", 'Seattle Sounders', 'SEA'),
    TeamScheduleQuery(
        f"{ESPN_SITE_API}/football/college-football/teams/WASH",
        'Washington Huskies (Football)',
        HUSKY_STADIUM
    ),
    TeamScheduleQuery(
        f"{ESPN_SITE_API}/basketball/mens-college-basketball/teams/264",
        "Washington Huskies (Men's Basketball)",
        ALASKA_AIRLINES_ARENA
    ),
    TeamScheduleQuery(
        f"{ESPN_SITE_API}/basketball/womens-college-basketball/teams/264",
        "Washington Huskies (Women's Basketball)",
        ALASKA_AIRLINES_ARENA
    ),
]

# Teams whose games ESPN already reports; Ticketmaster must not list them again.
ESPN_COVERED_ATTRACTION_IDS = frozenset({ATTRACTION_ID_SEAHAWKS, ATTRACTION_ID_SOUNDERS})


def secret_api_key_provider(secrets: SecretsClient, secret_name: Optional[str]) -> ApiKeyProvider:
    """
    Build a provider that loads an API key from Secrets Manager on demand.

    An unset secret name disables the source: the provider returns None.
    """
    def provider() -> Optional[str]:
        if not secret_name:
            return None
        try:
            return secrets.get_secret_string(secret_name)
        except (ClientError, SecretNotFoundError) as e:
            raise SourceTransportError(f"ticketmaster: could not get ticketmaster secret: {e}") from e

    return provider


def build_default_sources(
    ticketmaster_secret_name: Optional[str] = None,
    special_events_table_name: Optional[str] = None,
    secrets: Optional[SecretsClient] = None,
    timeout: int = DEFAULT_TIMEOUT
) -> List[EventSource]:
    """
    Build the production source list.

    Args:
        ticketmaster_secret_name: Secret holding the Ticketmaster API key
        special_events_table_name: DynamoDB table of special events
        secrets: Secrets client (created lazily when a secret is configured)
        timeout: HTTP request timeout in seconds

    Returns:
        Sources to run concurrently
    """
    if ticketmaster_secret_name and secrets is None:
        secrets = SecretsClient()
    if not ticketmaster_secret_name:
        logger.warning("Ticketmaster API key secret name not set, Ticketmaster will be skipped")

    sources = [
        EspnSource(ESPN_QUERIES, timeout=timeout),
        TicketmasterSource(
            secret_api_key_provider(secrets, ticketmaster_secret_name),
            covered_attraction_ids=ESPN_COVERED_ATTRACTION_IDS,
            timeout=timeout
        ),
    ]

    if special_events_table_name:
        sources.append(SpecialEventsSource(SpecialEventsStore(special_events_table_name)))
    else:
        logger.warning("Special events table name not set, special events will be skipped")

    return sources


def sources_from_environment(timeout: int = DEFAULT_TIMEOUT) -> List[EventSource]:
    """Build the production source list from the Lambda environment."""
    return build_default_sources(
        ticketmaster_secret_name=os.environ.get(TICKETMASTER_SECRET_ENV_VAR),
        special_events_table_name=os.environ.get(SPECIAL_EVENTS_TABLE_ENV_VAR),
        timeout=timeout
    )
