"""
Watchlist persistence.

The whole watchlist is one JSON document (movies, tvSeries, episodes)
stored under a single key of an injected key-value storage. Every
operation is a read-modify-write of that document and never raises:
storage faults are logged and reported as False (or an empty document).

There is no locking. Two mutations that overlap can both read the same
document and the later write wins, dropping the other change.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .exceptions import StorageError
from .models import TvEpisode, build_image_url, format_date, parse_rating, round_rating

logger = logging.getLogger(__name__)

STORAGE_KEY = "user_watchlist"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with milliseconds and a Z suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# ENTRIES
# =============================================================================

@dataclass
class MovieEntry:
    """Saved movie."""

    id: int
    title: str
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    added_at: Optional[str] = None

    def poster_url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.poster_path, size)

    def formatted_date(self, locale: str = "id") -> str:
        return format_date(self.release_date, locale)

    def rating(self) -> float:
        return round_rating(self.vote_average)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "posterPath": self.poster_path,
            "releaseDate": self.release_date,
            "voteAverage": self.vote_average,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MovieEntry":
        return cls(
            id=data["id"],
            title=data.get("title"),
            poster_path=data.get("posterPath"),
            release_date=data.get("releaseDate"),
            vote_average=parse_rating(data.get("voteAverage")),
            added_at=data.get("addedAt"),
        )


@dataclass
class SeriesEntry:
    """Saved TV series."""

    id: int
    name: str
    poster_path: Optional[str] = None
    first_air_date: Optional[str] = None
    vote_average: Optional[float] = None
    added_at: Optional[str] = None

    def poster_url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.poster_path, size)

    def formatted_date(self, locale: str = "id") -> str:
        return format_date(self.first_air_date, locale)

    def rating(self) -> float:
        return round_rating(self.vote_average)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "posterPath": self.poster_path,
            "firstAirDate": self.first_air_date,
            "voteAverage": self.vote_average,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SeriesEntry":
        return cls(
            id=data["id"],
            name=data.get("name"),
            poster_path=data.get("posterPath"),
            first_air_date=data.get("firstAirDate"),
            vote_average=parse_rating(data.get("voteAverage")),
            added_at=data.get("addedAt"),
        )


@dataclass
class EpisodeEntry:
    """Saved episode, with the parent names denormalized for display."""

    id: Optional[int]
    tv_id: int
    season_number: int
    episode_number: int
    name: Optional[str] = None
    series_name: Optional[str] = None
    season_name: Optional[str] = None
    still_path: Optional[str] = None
    air_date: Optional[str] = None
    vote_average: Optional[float] = None
    added_at: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.tv_id, self.season_number, self.episode_number)

    def still_url(self, size: str = "w300") -> Optional[str]:
        return build_image_url(self.still_path, size)

    def formatted_date(self, locale: str = "id") -> str:
        return format_date(self.air_date, locale)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tvId": self.tv_id,
            "seriesName": self.series_name,
            "seasonName": self.season_name,
            "seasonNumber": self.season_number,
            "episodeNumber": self.episode_number,
            "name": self.name,
            "stillPath": self.still_path,
            "airDate": self.air_date,
            "voteAverage": self.vote_average,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EpisodeEntry":
        return cls(
            id=data.get("id"),
            tv_id=data["tvId"],
            season_number=data["seasonNumber"],
            episode_number=data["episodeNumber"],
            name=data.get("name"),
            series_name=data.get("seriesName"),
            season_name=data.get("seasonName"),
            still_path=data.get("stillPath"),
            air_date=data.get("airDate"),
            vote_average=parse_rating(data.get("voteAverage")),
            added_at=data.get("addedAt"),
        )


def _entries(entry_cls, items, section: str) -> list:
    """Parse one section of the document, dropping entries that cannot be read."""
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning(f"Watchlist section '{section}' is not a list, ignoring it")
        return []

    entries = []
    for item in items:
        try:
            if not isinstance(item, dict):
                raise TypeError(f"expected an object, got {type(item).__name__}")
            entries.append(entry_cls.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed watchlist entry in '{section}': {e}")
    return entries


@dataclass
class WatchlistDocument:
    """The persisted root object."""

    movies: List[MovieEntry] = field(default_factory=list)
    tv_series: List[SeriesEntry] = field(default_factory=list)
    episodes: List[EpisodeEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.movies or self.tv_series or self.episodes)

    def counts(self) -> dict:
        return {
            "movies": len(self.movies),
            "tvSeries": len(self.tv_series),
            "episodes": len(self.episodes),
        }

    def to_dict(self) -> dict:
        return {
            "movies": [m.to_dict() for m in self.movies],
            "tvSeries": [t.to_dict() for t in self.tv_series],
            "episodes": [e.to_dict() for e in self.episodes],
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict) -> "WatchlistDocument":
        """
        Build from decoded JSON.

        Documents written before episodes existed have no 'episodes' key.
        Malformed entries are skipped one by one so the rest survive the
        next write.

        Raises:
            ValueError: If data is not a JSON object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Watchlist must be a JSON object, got {type(data).__name__}")
        return cls(
            movies=_entries(MovieEntry, data.get("movies"), "movies"),
            tv_series=_entries(SeriesEntry, data.get("tvSeries"), "tvSeries"),
            episodes=_entries(EpisodeEntry, data.get("episodes"), "episodes"),
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> "WatchlistDocument":
        return cls.from_dict(json.loads(raw.decode("utf-8")))


# =============================================================================
# STORE
# =============================================================================

class WatchlistStore:
    """
    Add/remove/exists operations over the persisted watchlist document.

    Args:
        storage: Object with get(key) -> bytes | None and set(key, bytes) -> bool
        clock: Returns the current time, used for addedAt timestamps
        key: Storage key owned by this store
    """

    def __init__(
        self,
        storage,
        clock: Callable[[], datetime] = _utc_now,
        key: str = STORAGE_KEY,
    ):
        self.storage = storage
        self.clock = clock
        self.key = key

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self) -> WatchlistDocument:
        """
        Read the document for a mutation.

        Nothing stored, or a value that does not decode to a JSON object,
        gives an empty document which the mutation then overwrites. Single
        malformed entries are dropped, not the whole document. A storage read
        fault propagates so the mutation fails instead of clobbering data
        it could not see.
        """
        raw = self.storage.get(self.key)
        if raw is None:
            return WatchlistDocument()
        try:
            return WatchlistDocument.from_bytes(raw)
        except ValueError as e:
            logger.error(f"Error parsing watchlist from storage, starting empty: {e}")
            return WatchlistDocument()

    def _save(self, document: WatchlistDocument) -> None:
        if not self.storage.set(self.key, document.to_bytes()):
            raise StorageError(f"Storage refused write for key {self.key!r}")

    def get_all(self) -> WatchlistDocument:
        """Return the current document, or an empty one if nothing usable is stored."""
        try:
            return self._load()
        except (StorageError, OSError) as e:
            logger.error(f"Error reading watchlist from storage: {e}")
            return WatchlistDocument()

    # ------------------------------------------------------------------
    # Movies
    # ------------------------------------------------------------------

    def add_movie(self, movie) -> bool:
        """Save a movie record. Already-saved ids are left as they are."""
        try:
            document = self._load()
            if not any(m.id == movie.id for m in document.movies):
                document.movies.append(
                    MovieEntry(
                        id=movie.id,
                        title=movie.title,
                        poster_path=movie.poster_path,
                        release_date=movie.release_date,
                        vote_average=movie.vote_average,
                        added_at=_iso_timestamp(self.clock()),
                    )
                )
                self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error adding movie to watchlist: {e}")
            return False

    def remove_movie(self, movie_id: int) -> bool:
        try:
            document = self._load()
            document.movies = [m for m in document.movies if m.id != movie_id]
            self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error removing movie from watchlist: {e}")
            return False

    def is_movie_in_watchlist(self, movie_id: int) -> bool:
        return any(m.id == movie_id for m in self.get_all().movies)

    # ------------------------------------------------------------------
    # TV series
    # ------------------------------------------------------------------

    def add_tv_series(self, series) -> bool:
        """Save a series record. Already-saved ids are left as they are."""
        try:
            document = self._load()
            if not any(t.id == series.id for t in document.tv_series):
                document.tv_series.append(
                    SeriesEntry(
                        id=series.id,
                        name=series.name,
                        poster_path=series.poster_path,
                        first_air_date=series.first_air_date,
                        vote_average=series.vote_average,
                        added_at=_iso_timestamp(self.clock()),
                    )
                )
                self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error adding TV series to watchlist: {e}")
            return False

    def remove_tv_series(self, tv_id: int) -> bool:
        try:
            document = self._load()
            document.tv_series = [t for t in document.tv_series if t.id != tv_id]
            self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error removing TV series from watchlist: {e}")
            return False

    def is_tv_series_in_watchlist(self, tv_id: int) -> bool:
        return any(t.id == tv_id for t in self.get_all().tv_series)

    # ------------------------------------------------------------------
    # Episodes (identified by series id, season and episode number)
    # ------------------------------------------------------------------

    def add_episode(
        self,
        episode: TvEpisode,
        tv_id: int,
        series_name: str,
        season_name: str,
    ) -> bool:
        """
        Save an episode.

        The remote episode id is stored but not used for identity: two
        payloads with the same (tv_id, season, episode) are the same entry.
        Display names are stored exactly as passed.
        """
        try:
            document = self._load()
            key = (tv_id, episode.season_number, episode.episode_number)
            if not any(e.key == key for e in document.episodes):
                document.episodes.append(
                    EpisodeEntry(
                        id=episode.id,
                        tv_id=tv_id,
                        season_number=episode.season_number,
                        episode_number=episode.episode_number,
                        name=episode.name,
                        series_name=series_name,
                        season_name=season_name,
                        still_path=episode.still_path,
                        air_date=episode.air_date,
                        vote_average=episode.vote_average,
                        added_at=_iso_timestamp(self.clock()),
                    )
                )
                self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error adding episode to watchlist: {e}")
            return False

    def remove_episode(self, tv_id: int, season_number: int, episode_number: int) -> bool:
        try:
            document = self._load()
            if not document.episodes:
                return True
            key = (tv_id, season_number, episode_number)
            document.episodes = [e for e in document.episodes if e.key != key]
            self._save(document)
            return True
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error removing episode from watchlist: {e}")
            return False

    def is_episode_in_watchlist(self, tv_id: int, season_number: int, episode_number: int) -> bool:
        key = (tv_id, season_number, episode_number)
        return any(e.key == key for e in self.get_all().episodes)
