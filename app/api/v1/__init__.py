"""
API v1: event, lock, seat, snapshot and health routes
"""

from app.api.v1.api import api_router

__all__ = ["api_router"]
