"""
API endpoints module
"""

from . import events, locks, seats, snapshots, health

__all__ = [
    "events",
    "locks",
    "seats",
    "snapshots",
    "health"
]
