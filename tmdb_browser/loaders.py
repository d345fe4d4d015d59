"""
Detail screen loaders.

A detail screen needs several endpoints at once (details, images, videos).
They are fetched in parallel on a small thread pool and combined only once
all of them have settled; if any of them failed, the whole screen fails
with one user-facing message.
"""

import logging
import random
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .exceptions import LoadError, TMDBError
from .models import ImageSet, Movie, Season, TvEpisode, TvSeries, Video, filter_trailers

logger = logging.getLogger(__name__)


def gather(
    tasks: Dict[str, Callable[[], object]],
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Dict[str, object]:
    """
    Run labeled callables in parallel and wait for all of them.

    Args:
        tasks: Label -> zero-argument callable
        max_workers: Pool size (defaults to one thread per task)
        timeout: Overall wait limit in seconds, None for no limit

    Returns:
        Label -> result, in the order of tasks

    Raises:
        The first failure in label order, after every task has settled.
        TimeoutError if tasks are still running when timeout expires.
    """
    if not tasks:
        return {}

    executor = ThreadPoolExecutor(max_workers=max_workers or len(tasks))
    try:
        futures = {label: executor.submit(fn) for label, fn in tasks.items()}
        _, not_done = wait(futures.values(), timeout=timeout)
    finally:
        # Never block on stragglers; their results are simply never read
        executor.shutdown(wait=False, cancel_futures=True)

    if not_done:
        raise TimeoutError(f"{len(not_done)} of {len(tasks)} requests still running after {timeout}s")

    for label, future in futures.items():
        error = future.exception()
        if error is not None:
            logger.error(f"Parallel request '{label}' failed: {error}")
            raise error

    return {label: future.result() for label, future in futures.items()}


@dataclass
class MovieDetails:
    movie: Movie
    images: ImageSet
    videos: List[Video] = field(default_factory=list)


@dataclass
class SeriesDetails:
    series: TvSeries
    images: ImageSet
    videos: List[Video] = field(default_factory=list)
    seasons: List[Season] = field(default_factory=list)
    selected_season: Optional[int] = None


@dataclass
class EpisodeDetails:
    episode: TvEpisode
    images: ImageSet
    videos: List[Video] = field(default_factory=list)


@dataclass
class HomeFeed:
    featured: Optional[Movie]
    top_rated: List[Movie] = field(default_factory=list)


class ScreenLoader:
    """
    Loads everything one screen needs.

    Args:
        client: TMDBClient
        max_workers: Parallel requests per screen
        timeout: Overall limit for one screen's requests, None to rely on
                 the client's per-request timeout
    """

    def __init__(self, client, max_workers: int = 3, timeout: Optional[float] = None):
        self.client = client
        self.max_workers = max_workers
        self.timeout = timeout

    def _join(self, what: str, tasks: Dict[str, Callable[[], object]]) -> Dict[str, object]:
        try:
            return gather(tasks, max_workers=self.max_workers, timeout=self.timeout)
        except (TMDBError, TimeoutError) as e:
            raise LoadError(f"Failed to load {what}. Please try again later.") from e

    def load_movie(self, movie_id: int) -> MovieDetails:
        """Details, images and YouTube trailers/teasers of a movie."""
        results = self._join(
            "movie details",
            {
                "movie": lambda: self.client.get_movie_details(movie_id),
                "images": lambda: self.client.get_movie_images(movie_id),
                "videos": lambda: self.client.get_movie_videos(movie_id),
            },
        )
        return MovieDetails(
            movie=results["movie"],
            images=results["images"],
            videos=filter_trailers(results["videos"]),
        )

    def load_tv_series(self, tv_id: int) -> SeriesDetails:
        """Details, images, trailers and regular seasons of a series."""
        results = self._join(
            "TV series details",
            {
                "series": lambda: self.client.get_tv_details(tv_id),
                "images": lambda: self.client.get_tv_images(tv_id),
                "videos": lambda: self.client.get_tv_videos(tv_id),
            },
        )
        series = results["series"]
        seasons = series.regular_seasons()
        return SeriesDetails(
            series=series,
            images=results["images"],
            videos=filter_trailers(results["videos"]),
            seasons=seasons,
            selected_season=seasons[0].season_number if seasons else None,
        )

    def load_season_episodes(self, tv_id: int, season_number: int) -> List[TvEpisode]:
        try:
            season = self.client.get_tv_season_details(tv_id, season_number)
        except TMDBError as e:
            logger.error(f"Failed to fetch episodes for season {season_number}: {e}")
            raise LoadError(f"Failed to load episodes for season {season_number}. Please try again later.") from e
        return season.episodes

    def load_episode(self, tv_id: int, season_number: int, episode_number: int) -> EpisodeDetails:
        """Episode details, stills and all of its videos."""
        results = self._join(
            "episode details",
            {
                "episode": lambda: self.client.get_tv_episode_details(tv_id, season_number, episode_number),
                "images": lambda: self.client.get_tv_episode_images(tv_id, season_number, episode_number),
                "videos": lambda: self.client.get_tv_episode_videos(tv_id, season_number, episode_number),
            },
        )
        return EpisodeDetails(
            episode=results["episode"],
            images=results["images"],
            videos=results["videos"],
        )

    def load_home_feed(self, rng: random.Random = None) -> HomeFeed:
        """First page of top rated movies with one picked at random to feature."""
        rng = rng or random.Random()
        try:
            page = self.client.get_top_rated_movies()
        except TMDBError as e:
            logger.error(f"Failed to fetch top rated movies: {e}")
            raise LoadError("Failed to load movies. Please try again later.") from e

        movies = list(page.results)
        featured = rng.choice(movies) if movies else None
        return HomeFeed(featured=featured, top_rated=movies)
