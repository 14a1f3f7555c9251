"""Environment-backed settings for the Rundeck CLI."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_VERSION = 24


class RundeckSettings(BaseSettings):
    """Connection settings.

    Every field can be set through a ``RUNDECK_``-prefixed environment
    variable or a ``.env`` file. Keyword arguments (the CLI flags) take
    precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="RUNDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server: str = Field(
        default="",
        description="Rundeck server base URL (e.g., https://rundeck.example.com)",
    )

    user: str = Field(default="", description="Rundeck username")

    password: str = Field(default="", description="Rundeck password")

    api_version: int = Field(
        default=DEFAULT_API_VERSION,
        ge=1,
        le=100,
        description="Rundeck API version used in /api/{version}/ URLs",
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout in seconds for a single HTTP request",
    )

    poll_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Give up polling an execution after this many seconds",
    )

    @field_validator("server")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL."""
        v = v.strip()
        if v.endswith("/"):
            v = v[:-1]
        return v

    @property
    def missing(self) -> list[str]:
        """Names of required connection settings that are still empty."""
        return [name for name in ("server", "user", "password") if not getattr(self, name)]
