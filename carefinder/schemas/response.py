"""
Response envelope

Every JSON body the API returns has the same outer shape:

    {"success": ..., "data": ..., "error": ..., "meta": {...}, "feedback": [...]}
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")

REQUEST_ID_HEADER = "X-Request-ID"


class FeedbackLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"


class ResponseMeta(BaseModel):
    request_id: str = Field(alias="requestId")
    timestamp: datetime

    model_config = {"populate_by_name": True}


class ResponseFeedback(BaseModel):
    """Non-fatal notice attached to a successful response."""

    code: str
    level: FeedbackLevel = FeedbackLevel.INFO
    message: str


class ResponseError(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    hint: Optional[str] = None


class ResponseEnvelope(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ResponseError] = None
    meta: ResponseMeta
    feedback: list[ResponseFeedback] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
