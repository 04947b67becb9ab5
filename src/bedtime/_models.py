"""Value objects flowing through the fetch → dispatch → log pipeline.

All types are frozen dataclasses scoped to a single run; nothing here
is mutated after construction.

- :class:`DeviceRecord` — one row of the device directory.
- :class:`DeviceTarget` — a record plus the network prefix and the
  fixed device port, rendered as ``{network_id}.{host_id}:38899``.
- :class:`DimCommand` — the control payload sent to every light.
- :class:`Success` / :class:`Failure` — the per-device dispatch outcome.
- :class:`AuditEvent` — one append-only audit row.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import TypeAlias

DEVICE_PORT = 38899
"""UDP port every light listens on for control datagrams."""

EVENT_TYPE = "Bedtime"
"""Audit ``event_type`` tag for this routine."""

# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DeviceRecord:
    """A light registered in the device directory.

    ``host_id`` is the device-specific address suffix, unique within
    the network.  ``name`` is a human-readable label and may repeat.
    """

    host_id: str
    name: str


@dataclass(frozen=True, slots=True)
class DeviceTarget:
    """Where to send the command for one :class:`DeviceRecord`."""

    record: DeviceRecord
    network_id: str
    port: int = DEVICE_PORT

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def address(self) -> str:
        """Transport address string, ``{network_id}.{host_id}:{port}``."""
        return f"{self.network_id}.{self.record.host_id}:{self.port}"


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DimCommand:
    """``setPilot`` request asking a light to switch on at a brightness.

    The defaults encode the bedtime payload::

        {"method":"setPilot","params":{"state":true,"dimming":10}}
    """

    state: bool = True
    dimming: int = 10

    def __post_init__(self) -> None:
        if not 1 <= self.dimming <= 100:
            msg = f"dimming must be between 1 and 100, got {self.dimming}"
            raise ValueError(msg)

    def to_json(self) -> str:
        """Serialise to compact JSON (no whitespace)."""
        return json.dumps(
            {
                "method": "setPilot",
                "params": {"state": self.state, "dimming": self.dimming},
            },
            separators=(",", ":"),
        )

    def to_bytes(self) -> bytes:
        """Datagram body — the UTF-8 encoded JSON document."""
        return self.to_json().encode("utf-8")


# ---------------------------------------------------------------------------
# Dispatch outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Success:
    """The datagram was handed to the local network stack.

    This says nothing about whether the light received or applied it.
    """

    target: DeviceTarget

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    """The datagram could not be sent; ``detail`` says why."""

    target: DeviceTarget
    detail: str

    @property
    def ok(self) -> bool:
        return False


DispatchOutcome: TypeAlias = Success | Failure
"""Tagged result of dispatching to one device."""

# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class Severity(enum.StrEnum):
    """Audit event severity, stored as text."""

    INFO = "Info"
    ERROR = "Error"


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """One row of the append-only audit log.

    ``machine`` references :attr:`DeviceRecord.name`.
    """

    severity: Severity
    message: str
    machine: str
    event_type: str = EVENT_TYPE
