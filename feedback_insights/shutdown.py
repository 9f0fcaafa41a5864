"""
feedback_insights/shutdown.py

Shared shutdown flag for graceful termination of in-flight analyses.
Both main.py and the routers import from here to avoid circular imports.
"""

import asyncio

_shutdown_event = asyncio.Event()


def set_shutdown():
    """Signal that the app is shutting down."""
    _shutdown_event.set()


def is_shutting_down() -> bool:
    """Check if the app is shutting down. Routers refuse new runs once set."""
    return _shutdown_event.is_set()


def reset_shutdown():
    """Clear the flag (tests start and stop the app repeatedly)."""
    _shutdown_event.clear()
