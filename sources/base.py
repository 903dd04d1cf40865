"""Common interface for event sources."""
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from processor.models import Event, TimeWindow

FetchResult = Tuple[List[Event], List[Event]]


class EventSource(ABC):
    """A producer of today's and tomorrow's events from one upstream."""

    name = 'source'

    @abstractmethod
    def fetch(self, window: TimeWindow, cancelled: Optional[threading.Event] = None) -> FetchResult:
        """
        Fetch and normalize events for the window.

        Implementations either return a complete (today, tomorrow) pair or
        raise a SourceError; they never return partial results.
        """
        raise NotImplementedError
