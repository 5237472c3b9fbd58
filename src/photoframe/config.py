"""Configuration management for the photoframe application.

This module provides centralized configuration management using environment variables
and Streamlit secrets as fallback. Every tunable of the import pipeline and of the
search layer has a getter here so that services never read the environment directly.
"""

import os
from typing import Any

try:
    import streamlit as st

    STREAMLIT_AVAILABLE = True
except ImportError:
    STREAMLIT_AVAILABLE = False

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_API_ENDPOINT = "https://photoslibrary.googleapis.com"
DEFAULT_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
DEFAULT_VALID_FILE_EXTENSIONS = "JPG,JPEG,PNG,GIF,HEIC,HEIF,WEBP,BMP,TIFF"


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        """Initialize configuration."""
        self._cache = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None and STREAMLIT_AVAILABLE:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets file outside of a Streamlit run
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")  # type: ignore[assignment]
                    else:
                        value = bool(value)  # type: ignore[assignment]
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local"]

    def is_production(self) -> bool:
        """Check if running in production mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["production", "prod"]

    def clear_cache(self):
        """Clear configuration cache."""
        self._cache.clear()


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get environment variable with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get required environment variable.

    Raises:
        ValueError: If the required environment variable is not found
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


# Remote endpoints and OAuth client


def get_api_endpoint() -> str:
    """Get the Photos Library API base URL."""
    return str(get_env("PHOTOS_API_ENDPOINT", DEFAULT_API_ENDPOINT)).rstrip("/")


def get_token_endpoint() -> str:
    """Get the OAuth token endpoint used for refreshing bearer tokens."""
    return str(get_env("OAUTH_TOKEN_ENDPOINT", DEFAULT_TOKEN_ENDPOINT))


def get_oauth_client_id() -> str:
    return str(get_required_env("OAUTH_CLIENT_ID"))


def get_oauth_client_secret() -> str:
    return str(get_required_env("OAUTH_CLIENT_SECRET"))


def get_token_lifetime() -> float:
    """Seconds after which a bearer token is considered stale."""
    return float(get_env("TOKEN_LIFETIME_SECONDS", 3300, float))


# Search layer


def get_photos_to_load() -> int:
    """Minimum number of photos a search tries to accumulate."""
    return int(get_env("PHOTOS_TO_LOAD", 150, int))


def get_search_page_size() -> int:
    return int(get_env("SEARCH_PAGE_SIZE", 100, int))


def get_album_page_size() -> int:
    return int(get_env("ALBUM_PAGE_SIZE", 50, int))


# Bulk import


def get_root_folder() -> str:
    """Get the local folder whose subdirectories can be imported."""
    return str(get_env("PHOTOFRAME_ROOT_FOLDER", os.path.join(os.getcwd(), "photos")))


def get_valid_file_extensions() -> list[str]:
    """Get the upper-cased extension allow-list for uploads."""
    raw = str(get_env("VALID_FILE_EXTENSIONS", DEFAULT_VALID_FILE_EXTENSIONS))
    return [ext.strip().lstrip(".").upper() for ext in raw.split(",") if ext.strip()]


def get_max_selected_folders() -> int:
    return int(get_env("MAX_SELECTED_FOLDERS", 50, int))


def get_cache_database_path() -> str:
    """Get the DuckDB file backing the persistent caches."""
    return str(get_env("CACHE_DATABASE_PATH", "photoframe_cache.duckdb"))


def get_environment() -> str:
    """Get current environment."""
    return str(get_env("ENVIRONMENT", "development"))
