"""Application configuration via pydantic-settings.

Configuration is loaded from environment variables and/or ``.env``
files.  The store credentials and the network identifier are flat
top-level fields so the conventional variable names work unchanged::

    DB_HOST=db.lan
    DB_USER=lights
    DB_PASSWORD=secret
    DB_NAME=home
    NETWORK_ID=192.168.12

Nested sections use ``__`` as the delimiter, e.g.
``LOGGING__FORMAT=text`` or ``COMMAND__DIMMING=25``.

The five connection values are **required** — a missing one raises
:class:`pydantic.ValidationError` at startup, which the CLI reports as
a configuration error before any device is touched.

All durations are in **seconds**.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

# -------------------------------------------------------------------
# Sub-models (BaseModel, NOT BaseSettings; nested via composition)
# -------------------------------------------------------------------


class CommandSettings(BaseModel):
    """Control command sent to every bedtime light.

    The defaults reproduce the classic bedtime payload — lights on,
    dimmed to 10 %.

    Environment variables (with ``__`` nesting)::

        COMMAND__STATE=true
        COMMAND__DIMMING=10
    """

    state: bool = Field(
        default=True,
        description="Requested power state of the light.",
    )
    dimming: Annotated[int, Field(ge=1, le=100)] = Field(
        default=10,
        description="Requested brightness in percent.",
    )


class TableSettings(BaseModel):
    """Table and column names of the device directory and audit log."""

    device_table: str = Field(
        default="machine",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Device directory table.",
    )
    bedtime_flag_column: str = Field(
        default="set_at_bedtime",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Boolean column marking devices for the bedtime routine.",
    )
    audit_table: str = Field(
        default="log",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Append-only audit log table.",
    )


class LoggingSettings(BaseModel):
    """Logging configuration.

    When ``file`` is set, logs are also written to a rotating file
    (size-based rotation, ``backup_count`` generations kept).  When
    ``None``, logs go to stderr only.

    The ``format`` field selects the output format:

    - ``"json"`` (default) — structured JSON lines, one object per
      record, suitable for journald or a log shipper.
    - ``"text"`` — human-readable timestamped lines for running the
      job by hand.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level.",
    )
    format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format ('json' or 'text').",
    )
    file: str | None = Field(
        default=None,
        description="Optional log file path. ``None`` means stderr only.",
    )
    max_file_size_mb: Annotated[int, Field(ge=1)] = Field(
        default=10,
        description="Maximum log file size in megabytes before rotation.",
    )
    backup_count: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Number of rotated log files to keep.",
    )


# -------------------------------------------------------------------
# Root settings
# -------------------------------------------------------------------


class Settings(BaseSettings):
    """Root settings for a bedtime run.

    Loaded from environment variables with the nested delimiter
    ``__`` and an optional ``.env`` file in the working directory.

    Example ``.env``::

        DB_HOST=db.lan
        DB_USER=lights
        DB_PASSWORD=secret
        DB_NAME=home
        NETWORK_ID=192.168.12
        MAX_WORKERS=4
        LOGGING__FORMAT=text
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_host: str = Field(description="Store hostname or IP address.")
    db_port: Annotated[int, Field(ge=1, le=65535)] = Field(
        default=5432,
        description="Store port.",
    )
    db_user: str = Field(description="Store user.")
    db_password: SecretStr = Field(description="Store password.")
    db_name: str = Field(description="Store database name.")
    network_id: str = Field(
        description=(
            "Network prefix prepended to every device host id, "
            "e.g. '192.168.12'."
        ),
    )

    store_timeout: Annotated[float, Field(gt=0)] = Field(
        default=10.0,
        description="Deadline for each store query or insert.",
    )
    send_timeout: Annotated[float, Field(gt=0)] = Field(
        default=5.0,
        description="Deadline for each datagram send.",
    )
    max_workers: Annotated[int, Field(ge=1)] = Field(
        default=1,
        description=(
            "Number of devices processed concurrently. "
            "1 processes devices strictly in directory order."
        ),
    )

    command: CommandSettings = Field(
        default_factory=CommandSettings,
        description="Control command sent to each light.",
    )
    tables: TableSettings = Field(
        default_factory=TableSettings,
        description="Store table and column names.",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration.",
    )
