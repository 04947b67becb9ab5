"""Device directory reader.

Loads the lights flagged for the bedtime routine and turns each row
into a :class:`~bedtime._models.DeviceTarget`.
"""

from __future__ import annotations

import asyncio
import logging

from bedtime._errors import ConfigError, StoreError
from bedtime._models import DeviceRecord, DeviceTarget
from bedtime._settings import TableSettings
from bedtime._store import Row, StorePort

logger = logging.getLogger(__name__)


def build_directory_query(tables: TableSettings) -> str:
    """SQL selecting ``host_id`` and ``name`` of every bedtime device."""
    return (
        f"SELECT host_id, name FROM {tables.device_table} "  # noqa: S608
        f"WHERE {tables.bedtime_flag_column} = TRUE"
    )


def _to_record(row: Row) -> DeviceRecord:
    try:
        host_id = row["host_id"]
        name = row["name"]
    except KeyError as exc:
        msg = f"device directory row is missing column {exc}"
        raise StoreError(msg) from exc
    # NULLs pass through as empty strings so the device still gets an
    # audit entry (its address will fail to parse).
    return DeviceRecord(
        host_id="" if host_id is None else str(host_id),
        name="" if name is None else str(name),
    )


async def fetch_bedtime_targets(
    store: StorePort,
    network_id: str | None,
    *,
    tables: TableSettings | None = None,
    timeout: float | None = None,
) -> tuple[DeviceTarget, ...]:
    """Return the targets of every device flagged for bedtime.

    Targets keep the order the store returned the rows in.  An empty
    directory is a normal outcome and yields an empty tuple.

    Args:
        store: Store to query.
        network_id: Network prefix joined to each ``host_id``.
        tables: Table/column names; defaults to :class:`TableSettings`.
        timeout: Deadline in seconds for the query (``None`` = no limit).

    Raises:
        ConfigError: If *network_id* is missing or blank.
        StoreError: If the query fails, times out, or returns rows
            without the expected columns.
    """
    if network_id is None or not network_id.strip():
        msg = "NETWORK_ID is not set"
        raise ConfigError(msg)

    statement = build_directory_query(tables or TableSettings())
    try:
        async with asyncio.timeout(timeout):
            rows = await store.fetch_all(statement)
    except TimeoutError as exc:
        msg = f"device directory query timed out after {timeout}s"
        raise StoreError(msg) from exc
    except StoreError:
        raise
    except Exception as exc:
        msg = f"device directory query failed: {exc}"
        raise StoreError(msg) from exc

    targets = tuple(
        DeviceTarget(record=_to_record(row), network_id=network_id) for row in rows
    )
    logger.info("Found %d light(s) flagged for bedtime", len(targets))
    return targets
