"""Datagram transport port and adapters.

Provides DatagramPort (Protocol) and three implementations:

- UdpClient — real asyncio UDP sender, one ephemeral endpoint per send
- MockDatagramClient — test double that records sends
- NullDatagramClient — silent no-op adapter used for dry runs

The protocol on the wire is fire-and-forget: a send succeeds once the
datagram is handed to the local network stack.  Nothing is read back.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from bedtime._errors import TransportError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Address parsing
# ---------------------------------------------------------------------------


_HOST_LABEL = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


def _is_hostname(host: str) -> bool:
    labels = host.split(".")
    if len(host) > 253 or all(label.isdigit() for label in labels):
        # dotted digits that failed the IP parse, e.g. 10.0.0.300
        return False
    return all(_HOST_LABEL.match(label) for label in labels)


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into a host and a port number.

    The host is an IP literal or a DNS hostname made of non-empty
    dot-separated labels.  IPv6 hosts use the bracketed form
    ``[::1]:38899``.  Hostnames are not resolved here.

    Raises:
        TransportError: If the address is malformed.
    """
    host, sep, port_text = address.rpartition(":")
    if not sep or not host:
        msg = f"invalid socket address syntax: {address!r}"
        raise TransportError(msg)

    bracketed = host.startswith("[") and host.endswith("]")
    if bracketed:
        host = host[1:-1]

    try:
        port = int(port_text)
    except ValueError:
        msg = f"invalid port in {address!r}"
        raise TransportError(msg) from None
    if not 0 < port < 65536:
        msg = f"port out of range in {address!r}"
        raise TransportError(msg)

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        ip = None
    if ip is not None:
        return str(ip), port

    if bracketed or not _is_hostname(host):
        msg = f"invalid socket address syntax: {address!r}"
        raise TransportError(msg)
    return host, port


# ---------------------------------------------------------------------------
# Port (Protocol)
# ---------------------------------------------------------------------------


@runtime_checkable
class DatagramPort(Protocol):
    """Port contract for sending one unacknowledged datagram."""

    async def send(self, host: str, port: int, payload: bytes) -> None: ...


# ---------------------------------------------------------------------------
# Null adapter
# ---------------------------------------------------------------------------


@dataclass
class NullDatagramClient:
    """Silent no-op adapter.  Nothing leaves the host."""

    async def send(
        self,
        host: str,
        port: int,
        payload: bytes,  # noqa: ARG002
    ) -> None:
        """Silently discard a send request."""
        logger.debug("NullDatagramClient.send(%s:%d) discarded", host, port)


# ---------------------------------------------------------------------------
# Mock / test-double adapter
# ---------------------------------------------------------------------------


@dataclass
class MockDatagramClient:
    """In-memory test double that records datagram sends.

    Sends to a host registered via :meth:`fail_for` raise the given
    error instead of being recorded.
    """

    sent: list[tuple[str, int, bytes]] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    latency: float = 0.0

    async def send(self, host: str, port: int, payload: bytes) -> None:
        """Record a send, or raise the failure registered for *host*."""
        if self.latency:
            await asyncio.sleep(self.latency)
        error = self.failures.get(host)
        if error is not None:
            raise error
        self.sent.append((host, port, payload))

    # -- Test helpers -------------------------------------------------------

    def fail_for(self, host: str, error: Exception | None = None) -> None:
        """Make every send to *host* raise *error* (default: unreachable)."""
        self.failures[host] = error or OSError(101, "Network is unreachable")

    @property
    def send_count(self) -> int:
        return len(self.sent)

    def hosts(self) -> list[str]:
        """Destination hosts in send order."""
        return [host for host, _, _ in self.sent]


# ---------------------------------------------------------------------------
# Real adapter
# ---------------------------------------------------------------------------


class _SendProtocol(asyncio.DatagramProtocol):
    """Captures errors the event loop reports for a send."""

    def __init__(self) -> None:
        self.error: Exception | None = None

    def error_received(self, exc: Exception) -> None:
        self.error = exc


@dataclass
class UdpClient:
    """Production adapter sending datagrams with asyncio.

    Each :meth:`send` opens a fresh endpoint bound to the wildcard
    address on an OS-assigned port, sends once and closes it.  No
    endpoint is shared between devices.
    """

    async def send(self, host: str, port: int, payload: bytes) -> None:
        """Send *payload* to ``(host, port)``.

        Raises:
            TransportError: If the host cannot be resolved, the endpoint
                cannot be opened or the network stack rejects the datagram.
        """
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except OSError as exc:
            msg = f"cannot resolve {host!r}: {exc}"
            raise TransportError(msg) from exc
        family, _, _, _, remote = infos[0]
        local_host = "::" if family == socket.AF_INET6 else "0.0.0.0"  # noqa: S104

        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _SendProtocol,
                local_addr=(local_host, 0),
                family=family,
            )
        except OSError as exc:
            msg = f"cannot open datagram endpoint: {exc}"
            raise TransportError(msg) from exc

        try:
            transport.sendto(payload, remote)
        finally:
            transport.close()

        if protocol.error is not None:
            raise TransportError(str(protocol.error)) from protocol.error
        logger.debug("Sent %d bytes to %s:%d", len(payload), host, port)
