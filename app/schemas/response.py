"""
Error envelope returned by the exception handlers
"""

from pydantic import BaseModel, Field
from typing import Any, Optional, Dict
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response raised by the plan engine"""
    success: bool = False
    error: ErrorDetail
    timestamp: datetime = Field(default_factory=_utcnow)
