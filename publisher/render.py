"""Rendering of the HTML page and the JSON feed."""
import html
import json
import logging
from string import Template
from typing import Any, Dict, List

from processor.models import Event, EventResults, TimeWindow

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Seattle Sports Today</title>
    <style>
        body { font-family: sans-serif; max-width: 40em; margin: 2em auto; padding: 0 1em; }
        .none { color: #666; }
    </style>
</head>
<body>
    <h1>What's happening in Seattle today?</h1>
    <p>$generated_date</p>
    $today_section
    <h2>Tomorrow</h2>
    $tomorrow_section
    <p><a href="todays_events.json">JSON</a></p>
</body>
</html>
""")


def format_generated_date(window: TimeWindow) -> str:
    """Format the window's day like 'Saturday Feb 14, 2026'."""
    today = window.today
    return f"{today:%A %b} {today.day}, {today.year}"


def _event_list(events: List[Event], empty_message: str) -> str:
    if not events:
        return f'<p class="none">{html.escape(empty_message)}</p>'
    items = '\n'.join(f"        <li>{html.escape(event.describe())}</li>" for event in events)
    return f"<ul>\n{items}\n    </ul>"


def render_html(results: EventResults, window: TimeWindow) -> bytes:
    """
    Render the static page.

    Args:
        results: Finalized events
        window: Window the events were gathered for

    Returns:
        UTF-8 encoded HTML
    """
    generated_date = format_generated_date(window)
    logger.info(f"Rendering page with {results.total} event(s) for {generated_date}")
    page = PAGE_TEMPLATE.substitute(
        generated_date=html.escape(generated_date),
        today_section=_event_list(results.today, 'Nothing is happening today.'),
        tomorrow_section=_event_list(results.tomorrow, 'Nothing is happening tomorrow.'),
    )
    return page.encode('utf-8')


def render_json(results: EventResults, window: TimeWindow) -> bytes:
    """Render the JSON feed with today's and tomorrow's events."""
    data: Dict[str, Any] = {
        'date': window.today.strftime('%Y-%m-%d'),
        'events': [event.to_dict() for event in results.today],
        'tomorrow_events': [event.to_dict() for event in results.tomorrow],
    }
    return json.dumps(data).encode('utf-8')
