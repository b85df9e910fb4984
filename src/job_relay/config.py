"""Relay settings loaded from the environment and a key=value config file.

Uses pydantic-settings for validation. Values come from RELAY_* environment
variables, with nested sections separated by a double underscore, e.g.
RELAY_SRC__SERVER or RELAY_FILTERS__HOST_NAME. A config file uses the same
names, one KEY=value per line, and is read with python-dotenv.
"""

import os
import re

import dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from job_relay.exceptions import ConfigError
from job_relay.filters import HOST_NAME, FilterRule


def _empty_to_none(value: str | None) -> str | None:
    if not value:
        return None
    return value


class EndpointSettings(BaseModel):
    """One side of the relay: queue server, queue name and optional key."""

    model_config = ConfigDict(frozen=True)

    server: str = Field(..., min_length=1, description="PGMQ Postgres DSN")
    queue: str = Field(..., min_length=1, description="Name of the queue")
    key: str | None = Field(None, description="Encryption key; unset means plaintext")

    @field_validator("key", mode="before")
    @classmethod
    def normalize_key(cls, value: str | None) -> str | None:
        """Treat an empty key as no key."""
        return _empty_to_none(value)

    @property
    def encrypted(self) -> bool:
        """True when payloads on this side are encrypted."""
        return self.key is not None


class FilterSettings(BaseModel):
    """Patterns jobs must match to be forwarded."""

    model_config = ConfigDict(frozen=True)

    host_name: str | None = Field(None, description="Regex matched against host_name")

    @field_validator("host_name", mode="before")
    @classmethod
    def validate_pattern(cls, value: str | None) -> str | None:
        """Reject patterns that do not compile."""
        value = _empty_to_none(value)
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid pattern {value!r}: {e}") from e
        return value


class Settings(BaseSettings):
    """Runtime settings for the relay (source, destination, filters)."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    app_name: str = Field(default="Job Queue Relay")
    src: EndpointSettings
    dst: EndpointSettings
    filters: FilterSettings = Field(default_factory=FilterSettings)

    @property
    def filter_rule(self) -> FilterRule | None:
        """The compiled host_name rule, or None to accept everything."""
        if self.filters.host_name is None:
            return None
        return FilterRule.compile(HOST_NAME, self.filters.host_name)


def describe_errors(error: ValidationError) -> str:
    """Flatten a ValidationError into 'field.path: message' pairs."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def get_settings(config_file: str | os.PathLike | None = None) -> Settings:
    """Load and validate settings.

    Args:
        config_file: Optional KEY=value file. Without one, a .env file in the
            working directory is loaded into the environment if present.

    Raises:
        ConfigError: If the file is missing or a setting is absent or invalid.
    """
    if config_file is None:
        if os.path.exists(".env"):
            dotenv.load_dotenv()
    elif not os.path.isfile(config_file):
        raise ConfigError(f"Config file {config_file} does not exist")

    try:
        return Settings(_env_file=config_file)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {describe_errors(e)}") from e
