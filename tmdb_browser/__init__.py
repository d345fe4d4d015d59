"""
TMDB Browser - movie and TV series browsing core with a local watchlist.

This package provides tools for:
- Fetching listings, details, images and videos from the TMDB API
- Normalizing payloads into movie, series and episode records
- Incremental "load more" pagination and debounced search
- Loading detail screens with parallel requests
- Persisting a watchlist of movies, series and episodes
"""

from .config import Config
from .exceptions import (
    APIStatusError,
    ConfigError,
    LoadError,
    PayloadError,
    StorageError,
    TMDBError,
    TransportError,
)
from .models import MediaRecord, MediaType, Movie, TvEpisode, TvSeries
from .client import TMDBClient
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .watchlist import WatchlistDocument, WatchlistStore
from .pagination import Listing, PaginatedListController, PaginationState, TimeWindow, listing_fetcher
from .search import Debouncer, SearchController
from .loaders import ScreenLoader, gather

__version__ = "1.0.0"
__all__ = [
    "Config",
    "TMDBError",
    "TransportError",
    "APIStatusError",
    "PayloadError",
    "LoadError",
    "ConfigError",
    "StorageError",
    "MediaRecord",
    "MediaType",
    "Movie",
    "TvSeries",
    "TvEpisode",
    "TMDBClient",
    "KeyValueStorage",
    "FileStorage",
    "MemoryStorage",
    "WatchlistDocument",
    "WatchlistStore",
    "Listing",
    "TimeWindow",
    "PaginationState",
    "PaginatedListController",
    "listing_fetcher",
    "Debouncer",
    "SearchController",
    "ScreenLoader",
    "gather",
]
