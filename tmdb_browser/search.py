"""
Debounced multi-search over movies and TV series.
"""

import functools
import logging
import threading
from threading import Lock
from typing import Callable, Optional

from .pagination import PaginatedListController, PaginationState

logger = logging.getLogger(__name__)

SEARCH_ERROR_MESSAGE = "Failed to search movies. Please try again."


class Debouncer:
    """
    Cancellable delayed call.

    Each trigger() cancels the pending timer and schedules a new one. A
    timer that already fired but lost the race with a newer trigger or a
    cancel() does nothing, so only the most recent schedule can run.

    Args:
        delay: Seconds to wait after the last trigger
        callback: Called with the arguments of the last trigger
        timer_factory: threading.Timer compatible constructor
    """

    def __init__(self, delay: float, callback: Callable, timer_factory=threading.Timer):
        self.delay = delay
        self.callback = callback
        self.timer_factory = timer_factory
        self._lock = Lock()
        self._timer = None
        self._token = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._token += 1
            timer = self.timer_factory(self.delay, self._fire, args=(self._token, args, kwargs))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._token += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, token: int, args: tuple, kwargs: dict) -> None:
        with self._lock:
            if token != self._token:
                return
            self._timer = None
        self.callback(*args, **kwargs)


class SearchController:
    """
    Search screen state.

    Typing schedules a debounced search; submit() searches at once. Every
    fresh query restarts at page 1 and replaces the results, load_more()
    appends the next page. Blank input clears results without a request.

    Args:
        client: TMDBClient (needs search_multi)
        debounce_seconds: Quiet period before a typed query is sent
        timer_factory: threading.Timer compatible constructor
    """

    def __init__(self, client, debounce_seconds: float = 0.5, timer_factory=threading.Timer):
        self.client = client
        self._query = ""
        self._active_query: Optional[str] = None
        self._pager = PaginatedListController(self._no_query, error_message=SEARCH_ERROR_MESSAGE)
        self._debouncer = Debouncer(debounce_seconds, self._search_current, timer_factory=timer_factory)

    @staticmethod
    def _no_query(page: int):
        raise RuntimeError("No active search query")

    @property
    def query(self) -> str:
        return self._query

    @property
    def active_query(self) -> Optional[str]:
        """Query whose results are currently shown."""
        return self._active_query

    @property
    def state(self) -> PaginationState:
        return self._pager.state

    @property
    def results(self) -> list:
        return self._pager.items

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    def set_query(self, text: str) -> None:
        """Input changed."""
        self._query = text or ""
        if not self._query.strip():
            self._debouncer.cancel()
            self._clear_results()
            return
        self._debouncer.trigger()

    def submit(self) -> bool:
        """Search the current input now."""
        self._debouncer.cancel()
        return self._search_current()

    def load_more(self) -> bool:
        if self._active_query is None:
            return False
        return self._pager.load_next_page()

    def clear(self) -> None:
        self._debouncer.cancel()
        self._query = ""
        self._clear_results()

    def close(self) -> None:
        self._debouncer.cancel()
        self._pager.close()

    # ------------------------------------------------------------------

    def _clear_results(self) -> None:
        self._active_query = None
        self._pager.reset()

    def _search_current(self) -> bool:
        query = self._query.strip()
        if not query:
            self._clear_results()
            return False

        logger.debug(f"Searching for: {query!r}")
        self._active_query = query
        self._pager.fetch_page = functools.partial(self._fetch, query)
        return self._pager.load_first_page()

    def _fetch(self, query: str, page: int):
        return self.client.search_multi(query, page)
