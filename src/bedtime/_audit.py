"""Audit log writer.

One :class:`~bedtime._models.AuditEvent` is appended per dispatch
outcome.  Rows are never updated or deleted.

A failed insert is **not** retried or swallowed here: the
:class:`~bedtime._errors.StoreError` propagates and ends the run.
"""

from __future__ import annotations

import asyncio
import logging

from bedtime._errors import StoreError
from bedtime._models import AuditEvent, DimCommand, DispatchOutcome, Failure, Severity
from bedtime._settings import TableSettings
from bedtime._store import StorePort

logger = logging.getLogger(__name__)


def build_insert_statement(tables: TableSettings) -> str:
    """SQL appending one audit row."""
    return (
        f"INSERT INTO {tables.audit_table} "  # noqa: S608
        "(severity, message, machine, event_type) "
        "VALUES (:severity, :message, :machine, :event_type)"
    )


def build_audit_event(outcome: DispatchOutcome, command: DimCommand) -> AuditEvent:
    """Derive the audit event for a dispatch outcome.

    Success::

        Light Bedroom Lamp at 10.0.0.7:38899 dimmed to 10%.

    Failure::

        Failed to dim light Bedroom Lamp at 10.0.0.7:38899: <detail>
    """
    target = outcome.target
    if isinstance(outcome, Failure):
        return AuditEvent(
            severity=Severity.ERROR,
            message=(
                f"Failed to dim light {target.name} at {target.address}: "
                f"{outcome.detail}"
            ),
            machine=target.name,
        )
    return AuditEvent(
        severity=Severity.INFO,
        message=(
            f"Light {target.name} at {target.address} dimmed to {command.dimming}%."
        ),
        machine=target.name,
    )


async def record_event(
    store: StorePort,
    event: AuditEvent,
    *,
    tables: TableSettings | None = None,
    timeout: float | None = None,
) -> None:
    """Append *event* to the audit log.

    Raises:
        StoreError: If the insert fails or misses its deadline.
    """
    statement = build_insert_statement(tables or TableSettings())
    params = {
        "severity": str(event.severity),
        "message": event.message,
        "machine": event.machine,
        "event_type": event.event_type,
    }
    try:
        async with asyncio.timeout(timeout):
            await store.execute(statement, params)
    except TimeoutError as exc:
        msg = f"audit insert for {event.machine!r} timed out after {timeout}s"
        raise StoreError(msg) from exc
    except StoreError:
        raise
    except Exception as exc:
        msg = f"audit insert for {event.machine!r} failed: {exc}"
        raise StoreError(msg) from exc
    logger.debug("Audit event recorded for %s (%s)", event.machine, event.severity)
