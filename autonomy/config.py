"""Runtime configuration and logging setup.

Settings are read from ``AUTONOMY_*`` environment variables (optionally
seeded from a ``.env`` file) by pydantic-settings, so a malformed value fails
at startup instead of at the first request.
"""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    """Process-wide settings for the Autonomy service and client.

    Attributes:
        spend_cache_ttl_seconds (float): How long a cached daily-spend figure
            is trusted before re-aggregating. Default: 5 seconds
        serialize_agent_spend (bool): Hold a per-agent lock around
            validate → record → invalidate. Off by default, which keeps the
            concurrent-approval race of the reference behaviour.
        log_level (str): Root log level name. Default: "INFO"
        environment (str): "development" exposes internal error messages in
            HTTP 500 responses; anything else hides them.
        api_url (str): Base URL the client SDK talks to.
        request_timeout (float): Client HTTP timeout in seconds.
        port (int): Port used when serving the API.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTONOMY_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    spend_cache_ttl_seconds: float = Field(
        default=5.0, ge=0, validation_alias="AUTONOMY_SPEND_CACHE_TTL"
    )
    serialize_agent_spend: bool = False
    log_level: str = "INFO"
    environment: str = Field(default="development", validation_alias="AUTONOMY_ENV")
    api_url: str = "http://localhost:4000/api"
    request_timeout: float = Field(default=30.0, gt=0)
    port: int = Field(default=4000, gt=0, validation_alias="PORT")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from the environment.

        Args:
            env_file: Dotenv file to read instead of ``.env``. Values already
                present in the environment win over the file.

        Returns:
            Settings: Parsed settings, defaults for anything unset
        """
        if env_file is None:
            return cls()
        return cls(_env_file=env_file)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
