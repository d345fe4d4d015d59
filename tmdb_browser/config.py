"""
Configuration management for the TMDB browser.

Loads configuration from environment variables and provides
a centralized Config dataclass for all settings.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError


def _default_data_dir() -> Path:
    return Path.home() / ".tmdb_browser"


@dataclass
class Config:
    """Centralized configuration from environment variables."""

    # TMDB API
    bearer_token: str
    base_url: str = "https://api.themoviedb.org/3"
    language: str = "en-US"
    search_language: str = "id-ID"
    include_adult: bool = False

    # Transport
    request_timeout: float = 10.0
    max_retries: int = 0  # Failures surface to the caller, no automatic retry
    max_workers: int = 3  # Parallel requests per detail screen

    # Display
    date_locale: str = "id"

    # Search
    search_debounce_seconds: float = 0.5

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)
    log_dir: Optional[Path] = None

    def __post_init__(self):
        if self.log_dir is None:
            self.log_dir = self.data_dir / "logs"

    @classmethod
    def from_env(cls, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_path: Optional path to .env file. If not provided,
                     looks for .env in the project root, then current directory.

        Returns:
            Config instance with loaded values.

        Raises:
            ConfigError: If the bearer token is missing or a numeric
                         setting cannot be parsed.
        """
        if env_path:
            load_dotenv(env_path)
        else:
            root_env = Path(__file__).parent.parent / ".env"
            if root_env.exists():
                load_dotenv(root_env)
            else:
                load_dotenv()

        # EXPO_PUBLIC_TMDB_ACCESS_TOKEN is the name older mobile builds used
        bearer_token = os.getenv("TMDB_BEARER_TOKEN") or os.getenv("EXPO_PUBLIC_TMDB_ACCESS_TOKEN")
        if not bearer_token:
            raise ConfigError("TMDB_BEARER_TOKEN environment variable is required")

        data_dir = Path(os.getenv("DATA_DIR", str(_default_data_dir()))).expanduser()
        log_dir_env = os.getenv("LOG_DIR")

        try:
            request_timeout = float(os.getenv("REQUEST_TIMEOUT", "10"))
            max_retries = int(os.getenv("MAX_RETRIES", "0"))
            max_workers = int(os.getenv("MAX_WORKERS", "3"))
            debounce = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5"))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        if request_timeout <= 0:
            raise ConfigError("REQUEST_TIMEOUT must be positive")

        return cls(
            bearer_token=bearer_token,
            base_url=os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3"),
            language=os.getenv("TMDB_LANGUAGE", "en-US"),
            search_language=os.getenv("TMDB_SEARCH_LANGUAGE", "id-ID"),
            include_adult=os.getenv("TMDB_INCLUDE_ADULT", "false").lower() == "true",
            request_timeout=request_timeout,
            max_retries=max_retries,
            max_workers=max_workers,
            date_locale=os.getenv("DATE_LOCALE", "id"),
            search_debounce_seconds=debounce,
            data_dir=data_dir,
            log_dir=Path(log_dir_env).expanduser() if log_dir_env else data_dir / "logs",
        )

    def get_headers(self) -> dict:
        """Get headers for TMDB API requests."""
        return {
            "Authorization": f"Bearer {self.bearer_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
