"""Per-device command dispatch.

:func:`dispatch` never raises for a device-level problem: a malformed
address, a send error or a missed deadline all come back as a
:class:`~bedtime._models.Failure` so one bad light cannot hold up or
cancel the others.
"""

from __future__ import annotations

import asyncio
import logging

from bedtime._errors import TransportError, describe
from bedtime._models import DeviceTarget, DimCommand, DispatchOutcome, Failure, Success
from bedtime._transport import DatagramPort, parse_address

logger = logging.getLogger(__name__)


async def dispatch(
    target: DeviceTarget,
    command: DimCommand,
    transport: DatagramPort,
    *,
    timeout: float | None = None,
) -> DispatchOutcome:
    """Send *command* to *target* as a single datagram.

    Args:
        target: Device to address.
        command: Payload to send.
        transport: Datagram adapter.
        timeout: Deadline in seconds for the send (``None`` = no limit).

    Returns:
        :class:`Success` once the datagram was handed to the network
        stack, otherwise :class:`Failure` with the reason.
    """
    try:
        host, port = parse_address(target.address)
    except TransportError as exc:
        return Failure(target, describe(exc))

    deadline = asyncio.timeout(timeout)
    try:
        async with deadline:
            await transport.send(host, port, command.to_bytes())
    except TimeoutError as exc:
        if deadline.expired():
            return Failure(target, f"send timed out after {timeout}s")
        # raised by the transport itself, not our deadline
        return Failure(target, describe(exc))
    except (TransportError, OSError) as exc:
        logger.debug("Dispatch to %s failed", target.address, exc_info=True)
        return Failure(target, describe(exc))
    return Success(target)
