"""AWS Lambda handler for Seattle Sports Today."""
import argparse
import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from botocore.exceptions import ClientError

from processor.aggregator import get_today_and_tomorrow_games
from processor.errors import SecretNotFoundError, UploadError
from processor.models import TimeWindow
from processor.time_window import SEATTLE_TZ, parse_date, resolve, resolve_date
from publisher.notifier import PRIORITY_DEFAULT, PRIORITY_HIGH, TAG_PARTY, TAG_SIREN, Notifier
from publisher.render import render_html, render_json
from sources.registry import sources_from_environment
from storage.secrets import SecretsClient
from storage.uploader import S3Uploader

UPLOAD_BUCKET_ENV_VAR = 'UPLOAD_S3_BUCKET_NAME'
UPLOAD_DISTRIBUTION_ENV_VAR = 'UPLOAD_CF_DISTRIBUTION_ID'
NOTIFIER_SECRET_ENV_VAR = 'NOTIFIER_SECRET_NAME'

# Attributes every LogRecord carries; anything else came in through extra=
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any extra fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_notifier(secret_name: Optional[str], timeout: int = 10) -> Notifier:
    """Build a notifier whose ntfy topic is read from Secrets Manager when first used."""
    def topic_provider() -> Optional[str]:
        if not secret_name:
            return None
        return SecretsClient().get_secret_string(secret_name)

    return Notifier(topic_provider, timeout=timeout)


def send_notification(notifier: Notifier, text: str, priority: int, tags: str) -> None:
    """Send a notification, logging rather than raising on failure."""
    try:
        notifier.notify(text, priority=priority, tags=tags)
    except (requests.RequestException, ClientError, SecretNotFoundError) as e:
        logging.getLogger(__name__).warning(f"Error sending notification: {e}")


def resolve_window(event: Optional[Dict[str, Any]]) -> TimeWindow:
    """
    Resolve the window to publish.

    A 'date' (YYYY-MM-DD) in the invocation payload backfills that day;
    otherwise the current Seattle day is used.

    Raises:
        ValueError: If the date is malformed or not a string
    """
    backfill_date = (event or {}).get('date')
    if backfill_date:
        if not isinstance(backfill_date, str):
            raise ValueError(f"date must be a YYYY-MM-DD string, got {backfill_date!r}")
        return resolve_date(parse_date(backfill_date))
    return resolve(datetime.now(SEATTLE_TZ))


def _error_response(notifier: Notifier, message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    logger = logging.getLogger(__name__)
    duration = time.time() - start_time
    logger.error(
        f"{message}: {error}",
        extra={
            'duration_seconds': round(duration, 2),
            'error_type': type(error).__name__
        },
        exc_info=error
    )
    send_notification(notifier, f"ERROR: {message}: {error}", PRIORITY_HIGH, TAG_SIREN)
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Seattle Sports Today.

    Aggregates today's and tomorrow's events, renders the page and JSON feed,
    uploads both and sends a notification with the outcome.

    Args:
        event: EventBridge event payload, optionally with a 'date' to backfill
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    bucket_name = os.environ.get(UPLOAD_BUCKET_ENV_VAR)
    distribution_id = os.environ.get(UPLOAD_DISTRIBUTION_ENV_VAR)

    setup_logging(log_level)
    logger = logging.getLogger(__name__)
    notifier = build_notifier(os.environ.get(NOTIFIER_SECRET_ENV_VAR))

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'bucket_name': bucket_name,
            'timeout_seconds': timeout_seconds
        }
    )

    try:
        window = resolve_window(event)
    except ValueError as e:
        return _error_response(notifier, 'invalid backfill date', e, start_time)

    try:
        results = get_today_and_tomorrow_games(
            window.today,
            window.tomorrow,
            sources_from_environment(timeout=timeout_seconds)
        )
    except Exception as e:
        return _error_response(notifier, "could not get today's games", e, start_time)

    try:
        html_contents = render_html(results, window)
        json_contents = render_json(results, window)
    except Exception as e:
        return _error_response(notifier, 'could not render page', e, start_time)

    try:
        if not bucket_name:
            raise UploadError(f"uploader: {UPLOAD_BUCKET_ENV_VAR} is not set")
        S3Uploader(bucket_name, distribution_id).upload(html_contents, json_contents)
    except UploadError as e:
        return _error_response(notifier, 'upload page', e, start_time)

    send_notification(
        notifier,
        f"Everything worked! Found {len(results.today)} game(s)",
        PRIORITY_DEFAULT,
        TAG_PARTY
    )

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_today': len(results.today),
            'events_tomorrow': len(results.tomorrow)
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Page published successfully',
            'date': window.today.strftime('%Y-%m-%d'),
            'statistics': {
                'events_today': len(results.today),
                'events_tomorrow': len(results.tomorrow),
                'duration_seconds': round(duration, 2)
            }
        })
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline from the command line."""
    parser = argparse.ArgumentParser(description='Publish the Seattle Sports Today page.')
    parser.add_argument('--date', help='Day to publish as YYYY-MM-DD (defaults to today in Seattle)')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the JSON feed instead of uploading and notifying'
    )
    args = parser.parse_args(argv)

    if not args.dry_run:
        response = lambda_handler({'date': args.date} if args.date else {}, None)
        print(response['body'])
        return 0 if response['statusCode'] == 200 else 1

    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    try:
        window = resolve_window({'date': args.date})
    except ValueError as e:
        parser.error(f"invalid --date: {e}")

    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    results = get_today_and_tomorrow_games(
        window.today,
        window.tomorrow,
        sources_from_environment(timeout=timeout_seconds)
    )
    print(render_json(results, window).decode('utf-8'))
    return 0


if __name__ == '__main__':
    sys.exit(main())
