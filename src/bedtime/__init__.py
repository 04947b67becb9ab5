"""bedtime.

Dims every light flagged for the nightly bedtime routine and records
one audit event per light.
"""

from importlib.metadata import PackageNotFoundError, version

from bedtime._audit import build_audit_event, build_insert_statement, record_event
from bedtime._directory import build_directory_query, fetch_bedtime_targets
from bedtime._dispatch import dispatch
from bedtime._errors import (
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    EXIT_RUNTIME_ERROR,
    EXIT_STORE_ERROR,
    BedtimeError,
    ConfigError,
    StoreError,
    TransportError,
    exit_code_for,
)
from bedtime._logging import JsonFormatter, configure_logging
from bedtime._models import (
    DEVICE_PORT,
    EVENT_TYPE,
    AuditEvent,
    DeviceRecord,
    DeviceTarget,
    DimCommand,
    DispatchOutcome,
    Failure,
    Severity,
    Success,
)
from bedtime._routine import BedtimeRoutine, RunReport
from bedtime._settings import (
    CommandSettings,
    LoggingSettings,
    Settings,
    TableSettings,
)
from bedtime._store import (
    MockStore,
    PostgresStore,
    StoreLifecycle,
    StorePort,
    build_database_url,
)
from bedtime._transport import (
    DatagramPort,
    MockDatagramClient,
    NullDatagramClient,
    UdpClient,
    parse_address,
)

try:
    __version__ = version("bedtime")
except PackageNotFoundError:
    # Editable installs without metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Routine
    "BedtimeRoutine",
    "RunReport",
    # Pipeline stages
    "build_audit_event",
    "build_directory_query",
    "build_insert_statement",
    "dispatch",
    "fetch_bedtime_targets",
    "record_event",
    # Models
    "DEVICE_PORT",
    "EVENT_TYPE",
    "AuditEvent",
    "DeviceRecord",
    "DeviceTarget",
    "DimCommand",
    "DispatchOutcome",
    "Failure",
    "Severity",
    "Success",
    # Errors
    "EXIT_CONFIG_ERROR",
    "EXIT_OK",
    "EXIT_RUNTIME_ERROR",
    "EXIT_STORE_ERROR",
    "BedtimeError",
    "ConfigError",
    "StoreError",
    "TransportError",
    "exit_code_for",
    # Logging
    "JsonFormatter",
    "configure_logging",
    # Store
    "MockStore",
    "PostgresStore",
    "StoreLifecycle",
    "StorePort",
    "build_database_url",
    # Transport
    "DatagramPort",
    "MockDatagramClient",
    "NullDatagramClient",
    "UdpClient",
    "parse_address",
    # Settings
    "CommandSettings",
    "LoggingSettings",
    "Settings",
    "TableSettings",
]
