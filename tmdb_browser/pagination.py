"""
Incremental "load more" controller for paginated listings.

A controller owns one screen's list: it fetches page 1, appends later
pages in order, refuses to start a second continuation while one is in
flight, and keeps already-loaded items when a fetch fails. Results that
arrive after the list was refreshed, reset or closed are dropped.
"""

import copy
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Callable, List, Optional

from .models import MediaType, PaginatedResults

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to load content. Please try again later."


class Listing(str, Enum):
    """Remote listing endpoint variant."""

    trending = "trending"
    top_rated = "top-rated"


class TimeWindow(str, Enum):
    """Trending window."""

    day = "day"
    week = "week"


FetchPage = Callable[[int], PaginatedResults]


def listing_fetcher(
    client,
    media_type: MediaType,
    listing: Listing,
    time_window: TimeWindow = TimeWindow.day,
) -> FetchPage:
    """
    Build the page fetch function for one listing.

    Args:
        client: TMDBClient (or anything with the same listing methods)
        media_type: MediaType.movie or MediaType.tv
        listing: Listing.trending or Listing.top_rated
        time_window: Trending window, ignored for top rated

    Returns:
        Callable taking a 1-based page number
    """
    media_type = MediaType(media_type)
    listing = Listing(listing)
    window = TimeWindow(time_window).value

    if media_type not in (MediaType.movie, MediaType.tv):
        raise ValueError(f"Listings exist for movies and TV only, not {media_type.value}")

    if listing is Listing.trending:
        if media_type is MediaType.movie:
            return lambda page: client.get_trending_movies(window, page)
        return lambda page: client.get_trending_tv_series(window, page)

    if media_type is MediaType.movie:
        return client.get_top_rated_movies
    return client.get_top_rated_tv_series


@dataclass
class PaginationState:
    """Snapshot of one paginated list."""

    items: List = field(default_factory=list)
    page: int = 0  # Last loaded page, 0 before the first success
    total_pages: Optional[int] = None
    loading: bool = False
    loading_more: bool = False
    refreshing: bool = False
    error: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.total_pages is None or self.page < self.total_pages

    @property
    def busy(self) -> bool:
        return self.loading or self.loading_more or self.refreshing


class PaginatedListController:
    """
    Drives one paginated list.

    Args:
        fetch_page: Returns PaginatedResults for a 1-based page number
        error_message: Text stored in state.error when a fetch fails
    """

    def __init__(self, fetch_page: FetchPage, error_message: str = DEFAULT_ERROR_MESSAGE):
        self.fetch_page = fetch_page
        self.error_message = error_message
        self._state = PaginationState()
        self._lock = Lock()
        self._generation = 0
        self._tokens = itertools.count(1)
        self._in_flight: Optional[int] = None
        self._closed = False

    @property
    def state(self) -> PaginationState:
        """Copy of the current state."""
        with self._lock:
            return copy.copy(self._state)

    @property
    def items(self) -> List:
        with self._lock:
            return list(self._state.items)

    # ------------------------------------------------------------------

    def load_first_page(self) -> bool:
        """Fetch page 1 and replace the list with it."""
        return self._load_first(refreshing=False)

    def refresh(self) -> bool:
        """Same as load_first_page but flagged as a pull-to-refresh."""
        return self._load_first(refreshing=True)

    def load_next_page(self) -> bool:
        """
        Fetch the page after the last loaded one and append it.

        Returns:
            True if a fetch was made and applied, False if it was skipped
            (in flight, no more pages, closed) or failed.
        """
        with self._lock:
            if self._closed or self._in_flight is not None or not self._state.has_more:
                return False
            token = next(self._tokens)
            self._in_flight = token
            generation = self._generation
            page = self._state.page + 1
            fetch_page = self.fetch_page
            if page == 1:
                self._state.loading = True
            else:
                self._state.loading_more = True
            self._state.error = None

        return self._run(fetch_page, page, token, generation, append=True)

    def reset(self) -> None:
        """Drop everything and invalidate fetches in flight."""
        with self._lock:
            self._generation += 1
            self._in_flight = None
            self._state = PaginationState()

    def close(self) -> None:
        """The owner is gone; late results are discarded."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._in_flight = None

    # ------------------------------------------------------------------

    def _load_first(self, refreshing: bool) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._generation += 1
            token = next(self._tokens)
            self._in_flight = token
            generation = self._generation
            fetch_page = self.fetch_page
            self._state.loading_more = False
            self._state.refreshing = refreshing
            self._state.loading = not refreshing
            self._state.error = None

        return self._run(fetch_page, 1, token, generation, append=False)

    def _run(self, fetch_page: FetchPage, page: int, token: int, generation: int, append: bool) -> bool:
        result: Optional[PaginatedResults] = None
        try:
            result = fetch_page(page)
        except Exception as e:
            logger.error(f"Failed to fetch page {page}: {e}")

        with self._lock:
            if self._in_flight == token:
                self._in_flight = None
            if generation != self._generation or self._closed:
                logger.debug(f"Discarding stale result for page {page}")
                return False

            self._state.loading = False
            self._state.loading_more = False
            self._state.refreshing = False

            if result is None:
                self._state.error = self.error_message
                return False

            if append:
                self._state.items = self._state.items + list(result.results)
            else:
                self._state.items = list(result.results)
            self._state.page = page
            self._state.total_pages = result.total_pages
            return True
