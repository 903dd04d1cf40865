"""Concurrent fan-out over event sources and assembly of the results."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from processor.errors import AggregationError, InvalidWindowError
from processor.models import EventResults, TimeWindow
from processor.time_window import SEATTLE_TZ
from sources.registry import sources_from_environment

logger = logging.getLogger(__name__)


def _fetch_and_append(source, window: TimeWindow, cancelled: threading.Event,
                      results: EventResults, lock: threading.Lock) -> None:
    today, tomorrow = source.fetch(window, cancelled)
    logger.info(
        f"{source.name}: found {len(today)} event(s) today and {len(tomorrow)} tomorrow",
        extra={'source': source.name}
    )
    if not today and not tomorrow:
        return

    with lock:
        results.extend(today, tomorrow)


def run_all(window: TimeWindow, sources: Sequence) -> EventResults:
    """
    Run every source concurrently and collect their events.

    All sources share one cancellation event. The first failure sets it and
    is raised right away, without waiting for siblings still blocked on a
    request; they stop at their next cancellation check and whatever they
    append afterwards is discarded with the results. No partial results escape.

    Args:
        window: Today/tomorrow window
        sources: Sources to run, one worker thread each

    Returns:
        Unsorted EventResults

    Raises:
        AggregationError: If any source fails
    """
    results = EventResults()
    if not sources:
        return results

    lock = threading.Lock()
    cancelled = threading.Event()

    pool = ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix='source')
    try:
        futures = {
            pool.submit(_fetch_and_append, source, window, cancelled, results, lock): source
            for source in sources
        }
        for future in as_completed(futures):
            source = futures[future]
            try:
                future.result()
            except Exception as e:
                logger.error(f"{source.name}: failed: {e}", extra={'source': source.name}, exc_info=True)
                cancelled.set()
                raise AggregationError(source.name, str(e)) from e
    finally:
        pool.shutdown(wait=not cancelled.is_set(), cancel_futures=True)

    return results


def finalize(results: EventResults) -> EventResults:
    """
    Stable-sort both days by start time.

    No deduplication happens here; sources are responsible for not reporting
    a game another source already covers.
    """
    results.today.sort(key=lambda event: event.raw_time)
    results.tomorrow.sort(key=lambda event: event.raw_time)
    return results


def _validate_window(today: datetime, tomorrow: datetime) -> TimeWindow:
    for label, value in (('today', today), ('tomorrow', tomorrow)):
        if value.tzinfo is None:
            raise InvalidWindowError(f"{label} must be timezone-aware")
        local = value.astimezone(SEATTLE_TZ)
        if (local.hour, local.minute, local.second, local.microsecond) != (0, 0, 0, 0):
            raise InvalidWindowError(f"{label} must be Seattle midnight, got {local.isoformat()}")

    today_local = today.astimezone(SEATTLE_TZ)
    tomorrow_local = tomorrow.astimezone(SEATTLE_TZ)
    if tomorrow_local.date() != today_local.date() + timedelta(days=1):
        raise InvalidWindowError(
            f"tomorrow ({tomorrow_local.date()}) is not the day after today ({today_local.date()})"
        )
    return TimeWindow(today=today_local, tomorrow=tomorrow_local)


def get_today_and_tomorrow_games(
    today: datetime,
    tomorrow: datetime,
    sources: Optional[List] = None
) -> EventResults:
    """
    Aggregate every source's events for today and tomorrow.

    The caller resolves the window, so a backfill for any date works without
    reading the wall clock here.

    Args:
        today: Seattle midnight of the day to report
        tomorrow: Seattle midnight of the following day
        sources: Sources to run (defaults to the production set built from
            the environment)

    Returns:
        EventResults with both days sorted by start time

    Raises:
        InvalidWindowError: If today/tomorrow are not consecutive local midnights
        AggregationError: If any source fails
    """
    window = _validate_window(today, tomorrow)

    if sources is None:
        sources = sources_from_environment()

    logger.info(
        f"Aggregating events for {window.today.date()} and {window.tomorrow.date()} "
        f"from {len(sources)} source(s)"
    )
    results = run_all(window, sources)
    return finalize(results)
