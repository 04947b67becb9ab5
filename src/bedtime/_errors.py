"""Error taxonomy for the bedtime routine.

Three failure families, each with a fixed propagation policy::

    ConfigError     ← missing/invalid configuration (fatal, nothing processed)
    StoreError      ← directory query or audit insert failed (fatal)
    TransportError  ← address malformed or datagram send failed (per device)

A :class:`TransportError` never leaves the dispatcher: it is converted
into a :class:`~bedtime._models.Failure` outcome and logged as an
``Error`` audit event.  A :class:`StoreError` raised while writing the
audit log aborts the run, since the audit trail is the only record of
what the routine did.

Every error maps to a process exit code via :func:`exit_code_for`.
Exit code 2 is left to the CLI parser for usage errors.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 3
EXIT_STORE_ERROR = 4

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BedtimeError(Exception):
    """Base class for all errors raised by the bedtime routine."""

    exit_code: int = EXIT_RUNTIME_ERROR


class ConfigError(BedtimeError):
    """A required configuration value is missing or invalid."""

    exit_code = EXIT_CONFIG_ERROR


class StoreError(BedtimeError):
    """A query or insert against the persistence store failed."""

    exit_code = EXIT_STORE_ERROR


class TransportError(BedtimeError):
    """A device address could not be parsed or the datagram send failed."""


def exit_code_for(error: BaseException) -> int:
    """Return the process exit code for *error*.

    Unknown exceptions map to :data:`EXIT_RUNTIME_ERROR`.
    """
    if isinstance(error, BedtimeError):
        return error.exit_code
    return EXIT_RUNTIME_ERROR


def describe(error: BaseException) -> str:
    """Render *error* as a one-line detail string for audit messages.

    Falls back to the exception class name when the message is empty
    (``TimeoutError()`` stringifies to ``""``).
    """
    text = str(error).strip()
    return text or type(error).__name__
