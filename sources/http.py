"""Shared HTTP helper for upstream JSON APIs."""
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from processor.errors import SourceCancelled, SourceDataError, SourceTransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def check_cancelled(cancelled: Optional[threading.Event], source_name: str) -> None:
    """Raise SourceCancelled if the shared cancellation scope has been set."""
    if cancelled is not None and cancelled.is_set():
        logger.info(f"{source_name}: stopping, aggregation was cancelled")
        raise SourceCancelled(f"{source_name}: cancelled")


def get_json(
    session: requests.Session,
    url: str,
    source_name: str,
    params: Optional[Dict[str, str]] = None,
    timeout: int = DEFAULT_TIMEOUT,
    cancelled: Optional[threading.Event] = None
) -> Tuple[Any, requests.Response]:
    """
    Issue a single GET and decode the JSON body.

    There is no retry: one failed request fails the calling source.

    Args:
        session: Session to issue the request on
        url: Upstream URL
        source_name: Name used in log lines and error messages
        params: Optional query parameters
        timeout: Request timeout in seconds
        cancelled: Shared cancellation scope checked before the request

    Returns:
        Tuple of (decoded payload, response)

    Raises:
        SourceCancelled: If the aggregation was cancelled before sending
        SourceTransportError: On network failure or a non-2xx status
        SourceDataError: If the body is not valid JSON
    """
    check_cancelled(cancelled, source_name)

    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"{source_name}: could not contact upstream: {e}", extra={'source': source_name})
        raise SourceTransportError(f"{source_name}: could not contact upstream: {e}") from e

    if not response.ok:
        body = response.text
        logger.error(
            f"{source_name}: upstream returned {response.status_code}",
            extra={'source': source_name, 'status_code': response.status_code}
        )
        raise SourceTransportError(
            f"{source_name}: could not retrieve data ({response.status_code}): {body}",
            status_code=response.status_code,
            body=body
        )

    try:
        payload = response.json()
    except ValueError as e:
        logger.error(f"{source_name}: could not decode response: {e}", extra={'source': source_name})
        raise SourceDataError(f"{source_name}: could not decode response: {e}") from e

    return payload, response
