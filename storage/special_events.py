"""DynamoDB store of manually curated special events."""
import logging
import threading
from datetime import date
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from processor.errors import SourceDataError, SourceTransportError
from processor.models import Event, FreeformEvent, StructuredGame, TimeWindow
from sources.base import EventSource, FetchResult
from sources.http import check_cancelled

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'


class SpecialEventsStore:
    """Reads and writes special events keyed by calendar date."""

    def __init__(self, table_name: str, page_size: Optional[int] = None):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key `date`, range key `slug`)
            page_size: Optional Query Limit, mostly useful to exercise pagination
        """
        self.table_name = table_name
        self.page_size = page_size
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized SpecialEventsStore for table: {table_name}")

    def events_for_date(self, day: date) -> List[Event]:
        """
        Query every special event recorded for one date.

        Follows LastEvaluatedKey until the query is exhausted.

        Args:
            day: Calendar date to look up

        Returns:
            List of events for that date

        Raises:
            SourceTransportError: If DynamoDB rejects the query
            SourceDataError: If a stored record is not a valid event
        """
        formatted_date = day.strftime(DATE_FORMAT)
        query_kwargs = {'KeyConditionExpression': Key('date').eq(formatted_date)}
        if self.page_size:
            query_kwargs['Limit'] = self.page_size

        events = []
        while True:
            try:
                response = self.table.query(**query_kwargs)
            except ClientError as e:
                logger.error(f"Error querying DynamoDB table {self.table_name}: {e}")
                raise SourceTransportError(f"special events: could not query dynamo: {e}") from e

            for item in response.get('Items', []):
                events.append(self._item_to_event(item))

            if 'LastEvaluatedKey' not in response:
                break
            query_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

        logger.info(f"Retrieved {len(events)} special events for {formatted_date}")
        return events

    def _item_to_event(self, item: Dict[str, Any]) -> Event:
        """
        Convert DynamoDB item to an event.

        A record with a raw description is freeform; otherwise it must carry
        the full team/opponent/venue/time framing.

        Raises:
            SourceDataError: If the record fits neither shape
        """
        try:
            raw_time = int(item.get('raw_time', 0))
        except (TypeError, ValueError) as e:
            raise SourceDataError(
                f"special events: could not unmarshal dynamo items: bad raw_time {item.get('raw_time')!r}"
            ) from e

        try:
            if item.get('raw_description'):
                return FreeformEvent(
                    description=item['raw_description'],
                    raw_time=raw_time,
                    venue=item.get('venue', '')
                )
            return StructuredGame(
                team_name=item.get('team_name', ''),
                opponent=item.get('opponent', ''),
                venue=item.get('venue', ''),
                local_time=item.get('local_time', ''),
                raw_time=raw_time
            )
        except ValueError as e:
            logger.warning(f"Invalid special event record {item.get('slug')}: {e}")
            raise SourceDataError(f"special events: could not unmarshal dynamo items: {e}") from e


class SpecialEventsSource(EventSource):
    """Looks up today's and tomorrow's special events."""

    name = 'special_events'

    def __init__(self, store: SpecialEventsStore):
        self.store = store

    def fetch(self, window: TimeWindow, cancelled: Optional[threading.Event] = None) -> FetchResult:
        check_cancelled(cancelled, self.name)
        today = self.store.events_for_date(window.today.date())
        check_cancelled(cancelled, self.name)
        tomorrow = self.store.events_for_date(window.tomorrow.date())
        return today, tomorrow
