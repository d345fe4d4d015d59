"""
Shared fixtures for TMDB browser tests.

Provides sample payloads, in-memory storage, a fake TMDB client serving
canned pages, and a timer that only fires when the test says so.
"""

import pytest
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from tmdb_browser.config import Config
from tmdb_browser.exceptions import TransportError
from tmdb_browser.models import (
    ImageSet,
    Movie,
    PaginatedResults,
    Season,
    TvEpisode,
    TvSeries,
    Video,
    record_from_tmdb,
)
from tmdb_browser.storage import MemoryStorage
from tmdb_browser.watchlist import WatchlistStore


# =============================================================================
# SAMPLE DATA
# =============================================================================

def movie_payload(movie_id: int, title: str = None, **overrides) -> dict:
    """Raw TMDB movie result."""
    data = {
        "id": movie_id,
        "title": title or f"Movie {movie_id}",
        "overview": f"Overview of movie {movie_id}.",
        "poster_path": f"/poster_{movie_id}.jpg",
        "backdrop_path": f"/backdrop_{movie_id}.jpg",
        "release_date": "1999-10-15",
        "vote_average": 8.4,
        "vote_count": 1000,
        "popularity": 50.0,
        "original_language": "en",
        "genre_ids": [18, 53],
    }
    data.update(overrides)
    return data


def tv_payload(tv_id: int, name: str = None, **overrides) -> dict:
    """Raw TMDB tv result."""
    data = {
        "id": tv_id,
        "name": name or f"Series {tv_id}",
        "overview": f"Overview of series {tv_id}.",
        "poster_path": f"/tv_poster_{tv_id}.jpg",
        "backdrop_path": f"/tv_backdrop_{tv_id}.jpg",
        "first_air_date": "2008-01-20",
        "last_air_date": "2013-09-29",
        "vote_average": 8.9,
        "vote_count": 12000,
        "number_of_seasons": 5,
        "number_of_episodes": 62,
        "status": "Ended",
        "seasons": [
            {"id": 3577, "season_number": 0, "name": "Specials", "episode_count": 9},
            {"id": 3572, "season_number": 1, "name": "Season 1", "episode_count": 7},
            {"id": 3573, "season_number": 2, "name": "Season 2", "episode_count": 13},
        ],
    }
    data.update(overrides)
    return data


def episode_payload(episode_id: int, season: int = 1, episode: int = 1, **overrides) -> dict:
    """Raw TMDB episode."""
    data = {
        "id": episode_id,
        "name": f"Episode {episode}",
        "overview": "Something happens.",
        "season_number": season,
        "episode_number": episode,
        "air_date": "2008-01-20",
        "still_path": f"/still_{episode_id}.jpg",
        "vote_average": 7.9,
        "vote_count": 150,
        "runtime": 58,
        "crew": [
            {"id": 1, "name": "Vince Gilligan", "job": "Director", "department": "Directing"},
            {"id": 2, "name": "Writer One", "job": "Writer", "department": "Writing"},
            {"id": 3, "name": "Writer Two", "job": "Screenplay", "department": "Writing"},
            {"id": 4, "name": "Editor", "job": "Editor", "department": "Editing"},
        ],
        "guest_stars": [
            {"id": 10, "name": "Guest", "character": "Someone", "order": 0},
        ],
    }
    data.update(overrides)
    return data


def make_page(page: int, total_pages: int, size: int = 20, start_id: int = None) -> PaginatedResults:
    """A page of Movie records with ids numbered by page."""
    first = start_id if start_id is not None else (page - 1) * size + 1
    return PaginatedResults(
        page=page,
        total_pages=total_pages,
        total_results=total_pages * size,
        results=[Movie.from_tmdb(movie_payload(first + i)) for i in range(size)],
    )


# =============================================================================
# FAKES
# =============================================================================

class FakePager:
    """Fetch function serving canned pages and recording calls."""

    def __init__(self, total_pages: int = 3, size: int = 20, fail_pages=()):
        self.total_pages = total_pages
        self.size = size
        self.fail_pages = set(fail_pages)
        self.calls: List[int] = []

    def __call__(self, page: int) -> PaginatedResults:
        self.calls.append(page)
        if page in self.fail_pages:
            raise TransportError("/movie/top_rated", "connection reset")
        return make_page(page, self.total_pages, self.size)


class MockTMDBClient:
    """Fake TMDB client returning sample data."""

    def __init__(self):
        self.search_calls: List[tuple] = []
        self.search_results: Dict[str, List[dict]] = {}
        self.fail = False

    def _maybe_fail(self, endpoint: str):
        if self.fail:
            raise TransportError(endpoint, "network unreachable")

    def get_top_rated_movies(self, page: int = 1) -> PaginatedResults:
        self._maybe_fail("/movie/top_rated")
        return make_page(page, 3)

    def get_top_rated_tv_series(self, page: int = 1) -> PaginatedResults:
        self._maybe_fail("/tv/top_rated")
        return PaginatedResults(page=page, total_pages=2, results=[TvSeries.from_tmdb(tv_payload(page * 100))])

    def get_trending_movies(self, time_window: str = "day", page: int = 1) -> PaginatedResults:
        self._maybe_fail(f"/trending/movie/{time_window}")
        return make_page(page, 2, size=5, start_id=1000 * page)

    def get_trending_tv_series(self, time_window: str = "day", page: int = 1) -> PaginatedResults:
        self._maybe_fail(f"/trending/tv/{time_window}")
        return PaginatedResults(page=page, total_pages=1, results=[TvSeries.from_tmdb(tv_payload(7))])

    def search_multi(self, query: str, page: int = 1) -> PaginatedResults:
        self.search_calls.append((query, page))
        self._maybe_fail("/search/multi")
        raw = self.search_results.get(query, [])
        per_page = 2
        chunk = raw[(page - 1) * per_page: page * per_page]
        total_pages = max(1, (len(raw) + per_page - 1) // per_page)
        return PaginatedResults(
            page=page,
            total_pages=total_pages,
            total_results=len(raw),
            results=[record_from_tmdb(r) for r in chunk if r.get("media_type") in ("movie", "tv")],
        )

    def get_movie_details(self, movie_id: int) -> Movie:
        self._maybe_fail(f"/movie/{movie_id}")
        return Movie.from_tmdb(movie_payload(movie_id, runtime=139))

    def get_movie_images(self, movie_id: int) -> ImageSet:
        self._maybe_fail(f"/movie/{movie_id}/images")
        return ImageSet.from_tmdb({"backdrops": [{"file_path": "/b1.jpg", "width": 1920, "height": 1080}]})

    def get_movie_videos(self, movie_id: int) -> List[Video]:
        self._maybe_fail(f"/movie/{movie_id}/videos")
        return [Video.from_tmdb(v) for v in SAMPLE_VIDEOS]

    def get_tv_details(self, tv_id: int) -> TvSeries:
        self._maybe_fail(f"/tv/{tv_id}")
        return TvSeries.from_tmdb(tv_payload(tv_id))

    def get_tv_images(self, tv_id: int) -> ImageSet:
        return ImageSet()

    def get_tv_videos(self, tv_id: int) -> List[Video]:
        return [Video.from_tmdb(v) for v in SAMPLE_VIDEOS]

    def get_tv_season_details(self, tv_id: int, season_number: int) -> Season:
        self._maybe_fail(f"/tv/{tv_id}/season/{season_number}")
        return Season.from_tmdb({
            "id": 1,
            "season_number": season_number,
            "name": f"Season {season_number}",
            "episodes": [episode_payload(100 + i, season_number, i) for i in range(1, 4)],
        })

    def get_tv_episode_details(self, tv_id: int, season_number: int, episode_number: int) -> TvEpisode:
        self._maybe_fail("/episode")
        return TvEpisode.from_tmdb(episode_payload(62085, season_number, episode_number))

    def get_tv_episode_images(self, tv_id: int, season_number: int, episode_number: int) -> ImageSet:
        return ImageSet.from_tmdb({"stills": [{"file_path": "/s1.jpg", "width": 1280, "height": 720}]})

    def get_tv_episode_videos(self, tv_id: int, season_number: int, episode_number: int) -> List[Video]:
        return [Video.from_tmdb(v) for v in SAMPLE_VIDEOS]


SAMPLE_VIDEOS = [
    {"id": "v1", "key": "abc123", "name": "Official Trailer", "type": "Trailer", "site": "YouTube"},
    {"id": "v2", "key": "def456", "name": "Teaser", "type": "Teaser", "site": "YouTube"},
    {"id": "v3", "key": "ghi789", "name": "Behind the scenes", "type": "Featurette", "site": "YouTube"},
    {"id": "v4", "key": "jkl012", "name": "Vimeo trailer", "type": "Trailer", "site": "Vimeo"},
]


class FakeTimer:
    """threading.Timer stand-in that fires only when fire() is called."""

    created: List["FakeTimer"] = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        """Run the callback the way threading.Timer would, unless cancelled."""
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def memory_storage():
    """Fresh in-memory storage for each test."""
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    """Watchlist store over in-memory storage with a fixed clock."""
    return WatchlistStore(memory_storage, clock=lambda: FIXED_NOW)


@pytest.fixture
def mock_tmdb_client():
    return MockTMDBClient()


@pytest.fixture
def fake_timers():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config pointing data and logs at a temporary directory."""
    return Config(
        bearer_token="test-token",
        base_url="https://api.example.test/3",
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        request_timeout=5.0,
    )
