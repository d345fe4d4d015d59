"""
TMDB API client.

Handles all TMDB API interactions including:
- Bearer-authenticated session with an explicit per-request timeout
- Optional transport retries (off by default)
- Translating failures into the TMDBError hierarchy
- Response parsing into data models
"""

from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Config
from .exceptions import APIStatusError, PayloadError, TMDBError, TransportError
from .models import (
    ImageSet,
    MediaType,
    Movie,
    PaginatedResults,
    Season,
    TvEpisode,
    TvSeries,
    Video,
    normalize,
    page_from_tmdb,
    record_from_tmdb,
)
from .utils import setup_logger

SEARCHABLE_TYPES = (MediaType.movie.value, MediaType.tv.value)
TIME_WINDOWS = ("day", "week")


class TMDBClient:
    """
    Handles all TMDB API interactions.

    Every public method either returns normalized records or raises a
    TMDBError subclass:
    - TransportError for timeouts and connection failures
    - APIStatusError for non-2xx responses (message from status_message)
    - PayloadError for bodies that are not the expected JSON shape
    """

    def __init__(self, config: Config):
        self.config = config
        self.session = self._create_session()
        self.logger = setup_logger("tmdb_client", config.log_dir)

    def _create_session(self) -> requests.Session:
        """Create requests session with retry configuration."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,  # Status errors are reported by _request
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        session.headers.update(self.config.get_headers())

        return session

    def close(self) -> None:
        self.session.close()

    def _request(self, endpoint: str, params: dict = None) -> dict:
        """
        Make an API request and return the decoded JSON object.

        Args:
            endpoint: API endpoint (e.g., '/movie/123')
            params: Query parameters

        Returns:
            Decoded JSON response

        Raises:
            TransportError: On timeout or connection failure
            APIStatusError: On a non-success HTTP status
            PayloadError: If the body is not a JSON object
        """
        url = f"{self.config.base_url}{endpoint}"

        try:
            response = self.session.get(url, params=params or {}, timeout=self.config.request_timeout)
        except requests.exceptions.Timeout:
            self.logger.error(f"Timeout after {self.config.request_timeout}s for {endpoint}")
            raise TransportError(endpoint, "timed out")
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Request error for {endpoint}: {e}")
            raise TransportError(endpoint, str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("status_message")
            message = message or f"Request to {endpoint} failed with status {response.status_code}"
            self.logger.error(f"Client error ({response.status_code}) for {endpoint}: {message}")
            raise APIStatusError(endpoint, response.status_code, message)

        if not isinstance(data, dict):
            self.logger.error(f"Unexpected payload for {endpoint}")
            raise PayloadError(f"Response from {endpoint} is not a JSON object")

        return data

    # ============ LISTINGS ============

    def get_top_rated_movies(self, page: int = 1) -> PaginatedResults[Movie]:
        """
        Top rated movies, excluding documentaries and low-vote titles.
        Uses: /movie/top_rated
        """
        data = self._request(
            "/movie/top_rated",
            params={
                "include_adult": str(self.config.include_adult).lower(),
                "include_video": "false",
                "language": self.config.language,
                "page": page,
                "sort_by": "vote_average.desc",
                "without_genres": "99,10755",
                "vote_count.gte": 200,
            },
        )
        return page_from_tmdb(data, Movie.from_tmdb)

    def get_top_rated_tv_series(self, page: int = 1) -> PaginatedResults[TvSeries]:
        """Uses: /tv/top_rated"""
        data = self._request(
            "/tv/top_rated",
            params={"language": self.config.language, "page": page},
        )
        return page_from_tmdb(data, TvSeries.from_tmdb)

    def get_trending_movies(self, time_window: str = "day", page: int = 1) -> PaginatedResults[Movie]:
        """Uses: /trending/movie/{time_window}"""
        self._check_time_window(time_window)
        data = self._request(
            f"/trending/movie/{time_window}",
            params={"language": self.config.language, "page": page},
        )
        return page_from_tmdb(data, Movie.from_tmdb)

    def get_trending_tv_series(self, time_window: str = "day", page: int = 1) -> PaginatedResults[TvSeries]:
        """Uses: /trending/tv/{time_window}"""
        self._check_time_window(time_window)
        data = self._request(
            f"/trending/tv/{time_window}",
            params={"language": self.config.language, "page": page},
        )
        return page_from_tmdb(data, TvSeries.from_tmdb)

    @staticmethod
    def _check_time_window(time_window: str) -> None:
        if time_window not in TIME_WINDOWS:
            raise ValueError(f"time_window must be one of {TIME_WINDOWS}, got {time_window!r}")

    # ============ SEARCH ============

    def search_multi(self, query: str, page: int = 1) -> PaginatedResults:
        """
        Search movies and TV series by text.
        Uses: /search/multi?query={query}&include_adult=false

        Results of any other media_type (people, ...) are dropped. The page
        counters are the service's, so a page can hold fewer than 20 items.
        """
        data = self._request(
            "/search/multi",
            params={
                "query": query,
                "include_adult": str(self.config.include_adult).lower(),
                "language": self.config.search_language,
                "page": page,
            },
        )
        return page_from_tmdb(
            data,
            record_from_tmdb,
            keep=lambda item: item.get("media_type") in SEARCHABLE_TYPES,
        )

    # ============ MOVIES ============

    def get_movie_details(self, movie_id: int) -> Movie:
        data = self._request(f"/movie/{movie_id}", params={"language": self.config.language})
        return normalize(Movie.from_tmdb, data)

    def get_movie_images(self, movie_id: int) -> ImageSet:
        return normalize(ImageSet.from_tmdb, self._request(f"/movie/{movie_id}/images"))

    def get_movie_videos(self, movie_id: int) -> List[Video]:
        return self._videos(self._request(f"/movie/{movie_id}/videos"))

    # ============ TV SERIES ============

    def get_tv_details(self, tv_id: int) -> TvSeries:
        data = self._request(f"/tv/{tv_id}", params={"language": self.config.language})
        return normalize(TvSeries.from_tmdb, data)

    def get_tv_images(self, tv_id: int) -> ImageSet:
        return normalize(ImageSet.from_tmdb, self._request(f"/tv/{tv_id}/images"))

    def get_tv_videos(self, tv_id: int) -> List[Video]:
        return self._videos(self._request(f"/tv/{tv_id}/videos"))

    def get_tv_season_details(self, tv_id: int, season_number: int) -> Season:
        data = self._request(
            f"/tv/{tv_id}/season/{season_number}",
            params={"language": self.config.language},
        )
        return normalize(Season.from_tmdb, data)

    # ============ EPISODES ============

    def _episode_path(self, tv_id: int, season_number: int, episode_number: int) -> str:
        return f"/tv/{tv_id}/season/{season_number}/episode/{episode_number}"

    def get_tv_episode_details(self, tv_id: int, season_number: int, episode_number: int) -> TvEpisode:
        data = self._request(
            self._episode_path(tv_id, season_number, episode_number),
            params={"language": self.config.language},
        )
        return normalize(TvEpisode.from_tmdb, data)

    def get_tv_episode_images(self, tv_id: int, season_number: int, episode_number: int) -> ImageSet:
        data = self._request(f"{self._episode_path(tv_id, season_number, episode_number)}/images")
        return normalize(ImageSet.from_tmdb, data)

    def get_tv_episode_videos(self, tv_id: int, season_number: int, episode_number: int) -> List[Video]:
        return self._videos(self._request(f"{self._episode_path(tv_id, season_number, episode_number)}/videos"))

    def _videos(self, data: dict) -> List[Video]:
        results = data.get("results")
        if not isinstance(results, list):
            raise PayloadError("Videos response is missing a results list")
        return [normalize(Video.from_tmdb, v) for v in results]

    # ============ HEALTH ============

    def test_connection(self) -> bool:
        """Test API connection by fetching a known movie."""
        try:
            movie: Optional[Movie] = self.get_movie_details(550)  # Fight Club
            return movie is not None and movie.title != ""
        except TMDBError as e:
            self.logger.error(f"API connection test failed: {e}")
            return False
