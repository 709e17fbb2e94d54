"""
Configuration management for the document archive.
Provides a centralized, type-safe configuration with validation.
"""
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
import logging

from .exceptions import ConfigurationError

@dataclass
class AppConfig:
    """Application configuration with validation and type safety."""
    # --- Core Application Configuration ---
    DATABASE_PATH: str = "archive.db"
    MANIFEST_PATH: str = "data/manifest.json"
    SECRET_KEY: str = "dev-secret-key-change-in-production"

    # --- Scheduled drain authorisation ---
    # When unset the drain endpoint accepts any caller.
    CRON_SECRET: Optional[str] = None

    # --- Web server ---
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    DEBUG: bool = False

    # --- Logging Configuration ---
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5
    LOG_LEVEL: str = "INFO"

    # --- Cache lifetimes (seconds) ---
    COMMENTS_CACHE_TTL: int = 180
    STATS_CACHE_TTL: int = 300

    # --- Community limits ---
    MAX_COMMENT_LENGTH: int = 1500
    MAX_USERNAME_LENGTH: int = 20

    # --- Gallery / viewer paging ---
    GALLERY_PAGE_SIZE: int = 24
    VIEWER_PAGE_WINDOW: int = 10
    STATIC_BUILD_COUNT: int = 2000

    @classmethod
    def load_from_env(cls) -> 'AppConfig':
        """
        Creates a configuration instance from environment variables.

        Returns:
            AppConfig: Validated configuration instance

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        # Try to load .env from workspace root, then from doc_archive/
        import pathlib
        env_loaded = load_dotenv()
        if not env_loaded:
            env_path = pathlib.Path(__file__).parent / ".env"
            load_dotenv(dotenv_path=env_path)

        def get_env(key: str, default: str) -> str:
            """Get environment variable with a required default value."""
            value = os.getenv(key)
            if value is not None:
                value = value.strip('"').strip("'")
            return value if value is not None else default

        def get_optional_env(key: str) -> Optional[str]:
            """Get environment variable that can be None (empty counts as unset)."""
            value = os.getenv(key)
            if value is not None:
                value = value.strip('"').strip("'")
            return value or None

        def get_flag(key: str, default: bool) -> bool:
            return get_env(key, str(default)).lower() in ("true", "1", "t")

        try:
            config = cls(
                DATABASE_PATH=get_env("DATABASE_PATH", cls.DATABASE_PATH),
                MANIFEST_PATH=get_env("MANIFEST_PATH", cls.MANIFEST_PATH),
                SECRET_KEY=get_env("SECRET_KEY", cls.SECRET_KEY),
                CRON_SECRET=get_optional_env("CRON_SECRET"),

                HOST=get_env("HOST", cls.HOST),
                PORT=int(get_env("PORT", str(cls.PORT))),
                DEBUG=get_flag("DEBUG", cls.DEBUG),

                LOG_FILE_PATH=get_env("LOG_FILE_PATH", cls.LOG_FILE_PATH),
                LOG_MAX_BYTES=int(get_env("LOG_MAX_BYTES", str(cls.LOG_MAX_BYTES))),
                LOG_BACKUP_COUNT=int(get_env("LOG_BACKUP_COUNT", str(cls.LOG_BACKUP_COUNT))),
                LOG_LEVEL=get_env("LOG_LEVEL", cls.LOG_LEVEL),

                COMMENTS_CACHE_TTL=int(get_env("COMMENTS_CACHE_TTL", str(cls.COMMENTS_CACHE_TTL))),
                STATS_CACHE_TTL=int(get_env("STATS_CACHE_TTL", str(cls.STATS_CACHE_TTL))),

                MAX_COMMENT_LENGTH=int(get_env("MAX_COMMENT_LENGTH", str(cls.MAX_COMMENT_LENGTH))),
                MAX_USERNAME_LENGTH=int(get_env("MAX_USERNAME_LENGTH", str(cls.MAX_USERNAME_LENGTH))),

                GALLERY_PAGE_SIZE=int(get_env("GALLERY_PAGE_SIZE", str(cls.GALLERY_PAGE_SIZE))),
                VIEWER_PAGE_WINDOW=int(get_env("VIEWER_PAGE_WINDOW", str(cls.VIEWER_PAGE_WINDOW))),
                STATIC_BUILD_COUNT=int(get_env("STATIC_BUILD_COUNT", str(cls.STATIC_BUILD_COUNT))),
            )

            # Validate database path
            db_dir = os.path.dirname(config.DATABASE_PATH)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            return config

        except ValueError as e:
            logging.error(f"Configuration error: {e}")
            raise ConfigurationError("Invalid numeric configuration value", details=str(e)) from e
        except Exception as e:
            logging.error(f"Configuration error: {e}")
            raise

# Create a global config instance
try:
    app_config = AppConfig.load_from_env()
except Exception as e:
    logging.critical(f"Failed to load configuration: {e}")
    raise
