"""Error response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Machine-readable error description."""

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Envelope returned for every error."""

    error: ErrorDetail
    request_id: Optional[str] = None
    timestamp: datetime
