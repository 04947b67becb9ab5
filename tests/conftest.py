"""Pytest configuration and shared fixtures."""

import pytest

# The bedtime testing plugin is registered via a ``pytest11`` entry
# point (pyproject.toml) for external consumers.  In our own test
# suite we disable it (``-p no:bedtime``) and load it here instead, so
# the bedtime import chain happens after ``pytest-cov`` starts tracing.
pytest_plugins = ["bedtime.testing._plugin"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may require external services)"
    )
