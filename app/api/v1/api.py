"""
Main API Router
Aggregates all API endpoints for v1
"""

from fastapi import APIRouter
from app.api.v1.endpoints import (
    events,
    locks,
    seats,
    snapshots,
    health
)

api_router = APIRouter()

# Event-scoped routers share the /events prefix
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(locks.router, prefix="/events", tags=["Locks"])
api_router.include_router(seats.router, prefix="/events", tags=["Seats"])
api_router.include_router(snapshots.router, prefix="/events", tags=["Snapshots"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
