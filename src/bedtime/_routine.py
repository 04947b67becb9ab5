"""Bedtime routine orchestrator.

:class:`BedtimeRoutine` is the composition root of a single run::

    open store → fetch targets → for each target: dispatch → log → close

Devices are independent, so the per-device body runs on a bounded pool
of ``settings.max_workers`` asyncio workers pulling from a shared
queue.  With one worker (the default) devices are processed strictly
in directory order.

Error policy:

- A dispatch failure is logged as an ``Error`` audit event and the run
  moves on.
- A :class:`~bedtime._errors.StoreError` while writing an audit event
  cancels the remaining workers and is re-raised from :meth:`run`.

Typical usage::

    routine = BedtimeRoutine(
        settings,
        store=PostgresStore.from_settings(settings),
        transport=UdpClient(),
    )
    report = await routine.run()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from bedtime._audit import build_audit_event, record_event
from bedtime._directory import fetch_bedtime_targets
from bedtime._dispatch import dispatch
from bedtime._errors import StoreError
from bedtime._models import DeviceTarget, DimCommand, DispatchOutcome
from bedtime._settings import Settings
from bedtime._store import StoreLifecycle, StorePort
from bedtime._transport import DatagramPort, NullDatagramClient

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """What a run did.

    ``outcomes`` follows directory order and only holds devices whose
    dispatch and audit write both completed before the run ended.
    ``logged`` counts audit events that were written.
    """

    outcomes: list[DispatchOutcome] = field(default_factory=list)
    logged: int = 0
    dry_run: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)


class BedtimeRoutine:
    """Fetch, dispatch and log for every light flagged for bedtime.

    Args:
        settings: Run configuration.
        store: Store adapter for the directory query and audit inserts.
        transport: Datagram adapter for the control command.
        dry_run: When True, no datagram leaves the host and no audit
            row is written; outcomes are only logged.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: StorePort,
        transport: DatagramPort,
        dry_run: bool = False,
    ) -> None:
        self._settings = settings
        self._store = store
        self._transport: DatagramPort = NullDatagramClient() if dry_run else transport
        self._dry_run = dry_run
        self._command = DimCommand(
            state=settings.command.state,
            dimming=settings.command.dimming,
        )

    @property
    def command(self) -> DimCommand:
        return self._command

    async def run(self) -> RunReport:
        """Execute one bedtime run.

        Raises:
            ConfigError: If the network identifier is missing.
            StoreError: If the store is unreachable or slow to connect,
                the directory query fails, or an audit insert fails.
        """
        report = RunReport(dry_run=self._dry_run)
        lifecycle = self._store if isinstance(self._store, StoreLifecycle) else None

        if lifecycle is not None:
            await self._start_store(lifecycle)
        try:
            targets = await fetch_bedtime_targets(
                self._store,
                self._settings.network_id,
                tables=self._settings.tables,
                timeout=self._settings.store_timeout,
            )
            if not targets:
                logger.info("No lights flagged for bedtime; nothing to do")
                return report

            await self._process_all(targets, report)
        finally:
            if lifecycle is not None:
                await lifecycle.stop()

        logger.info(
            "Bedtime run finished: %d dimmed, %d failed, %d logged",
            report.succeeded,
            report.failed,
            report.logged,
        )
        return report

    # --- run helpers --------------------------------------------------------

    async def _start_store(self, lifecycle: StoreLifecycle) -> None:
        """Open the store within ``store_timeout``."""
        timeout = self._settings.store_timeout
        try:
            async with asyncio.timeout(timeout):
                await lifecycle.start()
        except TimeoutError as exc:
            msg = f"store connection timed out after {timeout}s"
            raise StoreError(msg) from exc

    async def _process_all(
        self,
        targets: tuple[DeviceTarget, ...],
        report: RunReport,
    ) -> None:
        """Fan targets out to the worker pool and collect outcomes in order."""
        queue: asyncio.Queue[tuple[int, DeviceTarget]] = asyncio.Queue()
        for item in enumerate(targets):
            queue.put_nowait(item)
        results: dict[int, DispatchOutcome] = {}

        async def worker() -> None:
            while True:
                try:
                    index, target = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[index] = await self._process(target, report)

        workers = min(self._settings.max_workers, len(targets))
        try:
            async with asyncio.TaskGroup() as group:
                for _ in range(workers):
                    group.create_task(worker())
        except ExceptionGroup as eg:
            # TaskGroup wraps the first worker failure; surface it as-is.
            raise eg.exceptions[0]  # noqa: B904
        finally:
            report.outcomes = [results[i] for i in sorted(results)]

    async def _process(self, target: DeviceTarget, report: RunReport) -> DispatchOutcome:
        """Dispatch to one device and write its audit event."""
        outcome = await dispatch(
            target,
            self._command,
            self._transport,
            timeout=self._settings.send_timeout,
        )
        event = build_audit_event(outcome, self._command)
        context = {"device": target.name, "address": target.address}
        if outcome.ok:
            logger.info("SUCCESS: %s", event.message, extra=context)
        else:
            logger.error("ERROR: %s", event.message, extra=context)

        if self._dry_run:
            logger.info("Dry run: audit event for %s not written", target.name)
            return outcome

        await record_event(
            self._store,
            event,
            tables=self._settings.tables,
            timeout=self._settings.store_timeout,
        )
        report.logged += 1
        return outcome
