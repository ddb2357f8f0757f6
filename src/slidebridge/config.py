"""slidebridge configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when a configuration value is missing or invalid.

    This exception provides clear, actionable error messages naming the
    environment variable the user has to fix.

    Example:
        >>> raise ConfigError("OpenSlide library path", "OPENSLIDE_LIBRARY_PATH",
        ...                   problem="points to a missing file")
        Traceback (most recent call last):
        ...
        ConfigError: OpenSlide library path points to a missing file. Set it in
        .env file or OPENSLIDE_LIBRARY_PATH environment variable.
    """

    def __init__(
        self,
        key_name: str,
        env_var: str,
        *,
        problem: str = "not configured",
    ) -> None:
        """Initialize configuration error.

        Args:
            key_name: Human-readable name of the offending key.
            env_var: Environment variable name to set.
            problem: What is wrong with the current value.
        """
        self.key_name = key_name
        self.env_var = env_var
        self.problem = problem
        message = (
            f"{key_name} {problem}. "
            f"Set it in .env file or {env_var} environment variable."
        )
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Native library
    OPENSLIDE_LIBRARY_PATH: str | None = None  # Explicit libopenslide location

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # CLI
    THUMBNAIL_SIZE: int = 1024  # Long side of `slidebridge info --thumbnail`

    def require_library_path(self) -> Path:
        """Get the configured libopenslide path, checking that it exists.

        Returns:
            The configured library path.

        Raises:
            ConfigError: If OPENSLIDE_LIBRARY_PATH is unset, blank, or
                points to a file that does not exist.
        """
        value = self.OPENSLIDE_LIBRARY_PATH
        if value is None or value.strip() == "":
            raise ConfigError("OpenSlide library path", "OPENSLIDE_LIBRARY_PATH")
        path = Path(value)
        if not path.is_file():
            raise ConfigError(
                "OpenSlide library path",
                "OPENSLIDE_LIBRARY_PATH",
                problem=f"points to a missing file ({path})",
            )
        return path


# Singleton instance for import convenience
settings = Settings()
