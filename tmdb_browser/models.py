"""
Data models for the TMDB browser.

Normalizes raw TMDB payloads into movie, series and episode records with
computed display accessors (image URLs, formatted dates, rounded ratings).
Everything here is a pure transformation: no network, no storage.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Callable, ClassVar, Generic, List, Optional, TypeVar, Union

from .exceptions import PayloadError

logger = logging.getLogger(__name__)

IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={key}"
YOUTUBE_THUMBNAIL_URL = "https://img.youtube.com/vi/{key}/mqdefault.jpg"

UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"
PRESENT = "Present"

MONTH_NAMES = {
    "id": [
        "Januari", "Februari", "Maret", "April", "Mei", "Juni",
        "Juli", "Agustus", "September", "Oktober", "November", "Desember",
    ],
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
}

WRITER_JOBS = ("Writer", "Screenplay", "Story")
TRAILER_TYPES = ("Trailer", "Teaser")


class MediaType(str, Enum):
    """Kind tag shared by all media records."""

    movie = "movie"
    tv = "tv"
    episode = "episode"


# =============================================================================
# FORMATTING HELPERS
# =============================================================================

def build_image_url(path: Optional[str], size: str, base_url: str = IMAGE_BASE_URL) -> Optional[str]:
    """Template an image path fragment into a full URL, None when there is no path."""
    if not path:
        return None
    return f"{base_url}/{size}/{path.lstrip('/')}"


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a TMDB ISO date ('YYYY-MM-DD'), None when absent or malformed."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.debug(f"Unparseable date: {value!r}")
        return None


def format_date(value: Optional[str], locale: str = "id", missing: str = UNKNOWN) -> str:
    """Render an ISO date as '<day> <month name> <year>' for the given locale."""
    parsed = parse_date(value)
    if parsed is None:
        return missing
    months = MONTH_NAMES.get(locale.split("-")[0].lower(), MONTH_NAMES["en"])
    return f"{parsed.day} {months[parsed.month - 1]} {parsed.year}"


def round_rating(value: Optional[float]) -> float:
    """Round a 0-10 vote average to one decimal, halves away from zero (7.25 -> 7.3)."""
    if value is None:
        return 0.0
    return float(Decimal(float(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def parse_rating(value: Any) -> Optional[float]:
    """Coerce a vote average to float, None when absent. Raises ValueError for non-numeric values."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid rating: {value!r}")
    try:
        rating = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid rating: {value!r}") from e
    if not math.isfinite(rating):
        raise ValueError(f"Invalid rating: {value!r}")
    return rating


def format_runtime(minutes: Optional[int]) -> str:
    """Format run minutes as '1h 5m' or '45m'."""
    if not minutes:
        return UNKNOWN
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def _names(items: Optional[list]) -> List[str]:
    return [item.get("name") for item in items or [] if isinstance(item, dict) and item.get("name")]


# =============================================================================
# PEOPLE
# =============================================================================

@dataclass
class CrewMember:
    """Crew credit (director, writer, ...)."""

    id: int
    name: str
    job: Optional[str] = None
    department: Optional[str] = None
    profile_path: Optional[str] = None

    def profile_url(self, size: str = "w185") -> Optional[str]:
        return build_image_url(self.profile_path, size)

    @classmethod
    def from_tmdb(cls, data: dict) -> "CrewMember":
        """Create CrewMember from a TMDB crew entry."""
        return cls(
            id=data.get("id"),
            name=data.get("name", UNKNOWN),
            job=data.get("job"),
            department=data.get("department"),
            profile_path=data.get("profile_path"),
        )


@dataclass
class CastMember:
    """Cast credit (guest star or regular)."""

    id: int
    name: str
    character: Optional[str] = None
    order: Optional[int] = None
    profile_path: Optional[str] = None

    def profile_url(self, size: str = "w185") -> Optional[str]:
        return build_image_url(self.profile_path, size)

    @classmethod
    def from_tmdb(cls, data: dict) -> "CastMember":
        """Create CastMember from a TMDB cast entry."""
        return cls(
            id=data.get("id"),
            name=data.get("name", UNKNOWN),
            character=data.get("character"),
            order=data.get("order"),
            profile_path=data.get("profile_path"),
        )


# =============================================================================
# MEDIA RECORDS
# =============================================================================

@dataclass
class MediaSummary:
    """What every card needs to display, whatever the record kind."""

    kind: MediaType
    id: int
    title: str
    rating: Union[float, str]
    date: str
    poster_url: Optional[str]


@dataclass
class MediaRecord:
    """Common base for movies, series and episodes."""

    kind: ClassVar[MediaType]

    id: int
    overview: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None

    @property
    def display_title(self) -> str:
        raise NotImplementedError

    def formatted_date(self, locale: str = "id") -> str:
        raise NotImplementedError

    def image_url(self, size: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError

    def rating_percentage(self) -> Union[float, str]:
        return round_rating(self.vote_average)

    def summary(self, locale: str = "id") -> MediaSummary:
        """Build the displayable summary shared by all record kinds."""
        return MediaSummary(
            kind=self.kind,
            id=self.id,
            title=self.display_title,
            rating=self.rating_percentage(),
            date=self.formatted_date(locale),
            poster_url=self.image_url(),
        )


@dataclass
class Movie(MediaRecord):
    """Movie record (also used for untyped search results)."""

    kind: ClassVar[MediaType] = MediaType.movie

    title: str = UNKNOWN
    original_title: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    popularity: Optional[float] = None
    original_language: Optional[str] = None
    runtime: Optional[int] = None
    tagline: Optional[str] = None
    status: Optional[str] = None
    media_type: str = MediaType.movie.value
    genre_ids: List[int] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    production_companies: List[str] = field(default_factory=list)

    @property
    def display_title(self) -> str:
        return self.title

    @property
    def release_year(self) -> Optional[str]:
        return self.release_date.split("-")[0] if self.release_date else None

    def poster_url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.poster_path, size)

    def backdrop_url(self, size: str = "w1280") -> Optional[str]:
        return build_image_url(self.backdrop_path, size)

    def image_url(self, size: Optional[str] = None) -> Optional[str]:
        return self.poster_url(size or "w500")

    def formatted_release_date(self, locale: str = "id") -> str:
        return format_date(self.release_date, locale)

    def formatted_date(self, locale: str = "id") -> str:
        return self.formatted_release_date(locale)

    @classmethod
    def from_tmdb(cls, data: dict) -> "Movie":
        """Create Movie from a TMDB movie (or mixed search) payload."""
        return cls(
            id=data.get("id"),
            title=data.get("title") or data.get("name") or UNKNOWN,
            original_title=data.get("original_title") or data.get("original_name"),
            overview=data.get("overview"),
            poster_path=data.get("poster_path"),
            backdrop_path=data.get("backdrop_path"),
            release_date=data.get("release_date") or data.get("first_air_date"),
            vote_average=parse_rating(data.get("vote_average")),
            vote_count=data.get("vote_count"),
            popularity=data.get("popularity"),
            original_language=data.get("original_language"),
            runtime=data.get("runtime"),
            tagline=data.get("tagline"),
            status=data.get("status"),
            media_type=data.get("media_type") or MediaType.movie.value,
            genre_ids=list(data.get("genre_ids") or []),
            genres=_names(data.get("genres")),
            production_companies=_names(data.get("production_companies")),
        )


@dataclass
class TvEpisode(MediaRecord):
    """Single episode of a series."""

    kind: ClassVar[MediaType] = MediaType.episode

    name: str = UNKNOWN
    episode_number: Optional[int] = None
    season_number: Optional[int] = None
    air_date: Optional[str] = None
    still_path: Optional[str] = None
    runtime: Optional[int] = None
    production_code: Optional[str] = None
    show_id: Optional[int] = None
    crew: List[CrewMember] = field(default_factory=list)
    guest_stars: List[CastMember] = field(default_factory=list)

    @property
    def display_title(self) -> str:
        return self.name

    def still_url(self, size: str = "original") -> Optional[str]:
        return build_image_url(self.still_path, size)

    def image_url(self, size: Optional[str] = None) -> Optional[str]:
        return self.still_url(size or "original")

    def formatted_air_date(self, locale: str = "id") -> str:
        return format_date(self.air_date, locale)

    def formatted_date(self, locale: str = "id") -> str:
        return self.formatted_air_date(locale)

    def rating_percentage(self) -> Union[float, str]:
        """Rounded rating, or 'N/A' when the episode has no votes yet."""
        if not self.vote_average:
            return NOT_AVAILABLE
        return round_rating(self.vote_average)

    def directors(self) -> List[CrewMember]:
        return [c for c in self.crew if c.job == "Director"]

    def writers(self) -> List[CrewMember]:
        return [c for c in self.crew if c.job in WRITER_JOBS]

    def formatted_runtime(self) -> str:
        return format_runtime(self.runtime)

    @classmethod
    def from_tmdb(cls, data: dict) -> "TvEpisode":
        """Create TvEpisode from a TMDB episode payload."""
        return cls(
            id=data.get("id"),
            name=data.get("name") or UNKNOWN,
            overview=data.get("overview"),
            episode_number=data.get("episode_number"),
            season_number=data.get("season_number"),
            air_date=data.get("air_date"),
            still_path=data.get("still_path"),
            vote_average=parse_rating(data.get("vote_average")),
            vote_count=data.get("vote_count"),
            runtime=data.get("runtime"),
            production_code=data.get("production_code"),
            show_id=data.get("show_id"),
            crew=[CrewMember.from_tmdb(c) for c in data.get("crew") or []],
            guest_stars=[CastMember.from_tmdb(c) for c in data.get("guest_stars") or []],
        )


@dataclass
class Season:
    """Season summary, with episodes when loaded from the season endpoint."""

    id: Optional[int]
    season_number: int
    name: str = UNKNOWN
    overview: Optional[str] = None
    air_date: Optional[str] = None
    episode_count: Optional[int] = None
    poster_path: Optional[str] = None
    episodes: List[TvEpisode] = field(default_factory=list)

    def poster_url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.poster_path, size)

    @classmethod
    def from_tmdb(cls, data: dict) -> "Season":
        """Create Season from a TMDB season payload."""
        return cls(
            id=data.get("id"),
            season_number=data.get("season_number"),
            name=data.get("name") or UNKNOWN,
            overview=data.get("overview"),
            air_date=data.get("air_date"),
            episode_count=data.get("episode_count"),
            poster_path=data.get("poster_path"),
            episodes=[TvEpisode.from_tmdb(e) for e in data.get("episodes") or []],
        )


@dataclass
class TvSeries(MediaRecord):
    """TV series record. Exposes movie-style aliases for shared views."""

    kind: ClassVar[MediaType] = MediaType.tv

    name: str = UNKNOWN
    original_name: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    first_air_date: Optional[str] = None
    last_air_date: Optional[str] = None
    popularity: Optional[float] = None
    original_language: Optional[str] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    status: Optional[str] = None
    series_type: Optional[str] = None
    media_type: str = MediaType.tv.value
    genre_ids: List[int] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    networks: List[str] = field(default_factory=list)
    created_by: List[str] = field(default_factory=list)
    seasons: List[Season] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.name

    @property
    def display_title(self) -> str:
        return self.name

    @property
    def release_date(self) -> Optional[str]:
        return self.first_air_date

    @property
    def runtime(self) -> None:
        return None

    def poster_url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.poster_path, size)

    def backdrop_url(self, size: str = "w1280") -> Optional[str]:
        return build_image_url(self.backdrop_path, size)

    def image_url(self, size: Optional[str] = None) -> Optional[str]:
        return self.poster_url(size or "w500")

    def formatted_first_air_date(self, locale: str = "id") -> str:
        return format_date(self.first_air_date, locale)

    def formatted_last_air_date(self, locale: str = "id") -> str:
        return format_date(self.last_air_date, locale, missing=PRESENT)

    def formatted_release_date(self, locale: str = "id") -> str:
        return self.formatted_first_air_date(locale)

    def formatted_date(self, locale: str = "id") -> str:
        return self.formatted_first_air_date(locale)

    def regular_seasons(self) -> List[Season]:
        """Seasons without the 'specials' season 0."""
        return [s for s in self.seasons if s.season_number != 0]

    @classmethod
    def from_tmdb(cls, data: dict) -> "TvSeries":
        """Create TvSeries from a TMDB tv payload."""
        return cls(
            id=data.get("id"),
            name=data.get("name") or data.get("title") or UNKNOWN,
            original_name=data.get("original_name"),
            overview=data.get("overview"),
            poster_path=data.get("poster_path"),
            backdrop_path=data.get("backdrop_path"),
            first_air_date=data.get("first_air_date"),
            last_air_date=data.get("last_air_date"),
            vote_average=parse_rating(data.get("vote_average")),
            vote_count=data.get("vote_count"),
            popularity=data.get("popularity"),
            original_language=data.get("original_language"),
            number_of_seasons=data.get("number_of_seasons"),
            number_of_episodes=data.get("number_of_episodes"),
            status=data.get("status"),
            series_type=data.get("type"),
            media_type=data.get("media_type") or MediaType.tv.value,
            genre_ids=list(data.get("genre_ids") or []),
            genres=_names(data.get("genres")),
            networks=_names(data.get("networks")),
            created_by=_names(data.get("created_by")),
            seasons=[Season.from_tmdb(s) for s in data.get("seasons") or []],
        )


# =============================================================================
# IMAGES AND VIDEOS
# =============================================================================

@dataclass
class Image:
    """One entry of an images response."""

    file_path: str
    width: Optional[int] = None
    height: Optional[int] = None

    def url(self, size: str = "w500") -> Optional[str]:
        return build_image_url(self.file_path, size)

    @classmethod
    def from_tmdb(cls, data: dict) -> "Image":
        return cls(
            file_path=data.get("file_path"),
            width=data.get("width"),
            height=data.get("height"),
        )


@dataclass
class ImageSet:
    """Backdrops, posters and stills for one item."""

    backdrops: List[Image] = field(default_factory=list)
    posters: List[Image] = field(default_factory=list)
    stills: List[Image] = field(default_factory=list)

    def gallery_urls(self, kind: str = "backdrops", size: str = "original") -> List[str]:
        """Full-size URLs for an image viewer."""
        return [img.url(size) for img in getattr(self, kind) if img.file_path]

    @classmethod
    def from_tmdb(cls, data: dict) -> "ImageSet":
        return cls(
            backdrops=[Image.from_tmdb(i) for i in data.get("backdrops") or []],
            posters=[Image.from_tmdb(i) for i in data.get("posters") or []],
            stills=[Image.from_tmdb(i) for i in data.get("stills") or []],
        )


@dataclass
class Video:
    """Video attached to a movie, series or episode."""

    id: str
    key: str
    name: str = ""
    type: Optional[str] = None
    site: Optional[str] = None

    @property
    def is_trailer(self) -> bool:
        return self.site == "YouTube" and self.type in TRAILER_TYPES

    @property
    def youtube_url(self) -> str:
        return YOUTUBE_WATCH_URL.format(key=self.key)

    @property
    def thumbnail_url(self) -> str:
        return YOUTUBE_THUMBNAIL_URL.format(key=self.key)

    @classmethod
    def from_tmdb(cls, data: dict) -> "Video":
        return cls(
            id=data.get("id"),
            key=data.get("key"),
            name=data.get("name", ""),
            type=data.get("type"),
            site=data.get("site"),
        )


def filter_trailers(videos: List[Video]) -> List[Video]:
    """Keep YouTube trailers and teasers only."""
    return [v for v in videos if v.is_trailer]


# =============================================================================
# PAGINATION AND DISPATCH
# =============================================================================

R = TypeVar("R")


@dataclass
class PaginatedResults(Generic[R]):
    """One page of a paginated listing."""

    page: int
    total_pages: int
    total_results: int = 0
    results: List[R] = field(default_factory=list)


_RECORD_TYPES = {
    MediaType.movie.value: Movie,
    MediaType.tv.value: TvSeries,
    MediaType.episode.value: TvEpisode,
}


def normalize(factory: Callable[[dict], R], data: Any) -> R:
    """
    Run a from_tmdb factory, turning any failure into PayloadError.

    Args:
        factory: Callable building a record from a dict
        data: Raw decoded JSON

    Returns:
        The built record

    Raises:
        PayloadError: If data is not an object or the factory fails
    """
    if not isinstance(data, dict):
        raise PayloadError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return factory(data)
    except PayloadError:
        raise
    except Exception as e:
        raise PayloadError(f"Could not normalize payload: {e}") from e


def record_from_tmdb(data: dict, default_type: MediaType = MediaType.movie) -> MediaRecord:
    """Build the record variant named by data['media_type'] (or the default)."""
    media_type = data.get("media_type") if isinstance(data, dict) else None
    record_cls = _RECORD_TYPES.get(media_type or default_type.value)
    if record_cls is None:
        raise PayloadError(f"Unsupported media_type: {media_type}")
    return normalize(record_cls.from_tmdb, data)


def page_from_tmdb(
    data: Any,
    factory: Callable[[dict], R],
    keep: Optional[Callable[[dict], bool]] = None,
) -> PaginatedResults[R]:
    """
    Normalize a paginated response.

    Args:
        data: Raw response with page, total_pages, results
        factory: Builds one record from one result
        keep: Optional filter applied to raw results before building

    Returns:
        PaginatedResults of built records
    """
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise PayloadError("Paginated response is missing a results list")

    raw_results = [r for r in data["results"] if isinstance(r, dict)]
    if keep is not None:
        raw_results = [r for r in raw_results if keep(r)]

    try:
        page = int(data.get("page", 1))
        total_pages = int(data.get("total_pages", page))
        total_results = int(data.get("total_results", 0))
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Invalid pagination fields: {e}") from e

    return PaginatedResults(
        page=page,
        total_pages=total_pages,
        total_results=total_results,
        results=[normalize(factory, r) for r in raw_results],
    )
