"""Public test-support utilities for bedtime.

Re-exports test doubles and factories so that test suites can import
everything from a single ``bedtime.testing`` namespace instead of
reaching into private modules.

Provided symbols:

- :class:`MockStore` — in-memory store double with failure injection.
- :class:`MockDatagramClient` — datagram double that records sends.
- :class:`NullDatagramClient` — silent no-op datagram adapter.
- :func:`make_settings` — factory for ``Settings`` without ``.env`` files.
- :func:`device_rows` — directory rows from ``(host_id, name)`` pairs.
"""

from bedtime._store import MockStore
from bedtime._transport import MockDatagramClient, NullDatagramClient
from bedtime.testing._settings import device_rows, make_settings

__all__ = [
    "MockDatagramClient",
    "MockStore",
    "NullDatagramClient",
    "device_rows",
    "make_settings",
]
