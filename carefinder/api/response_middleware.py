"""
Envelope middleware

Successful JSON responses from the routers are wrapped in ResponseEnvelope.
Error responses are built by the exception handlers and pass through as-is.
A degraded search (fallback query embedding) gets a warning feedback entry.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from carefinder.schemas.query import EmbeddingQuality
from carefinder.schemas.response import (
    REQUEST_ID_HEADER,
    FeedbackLevel,
    ResponseEnvelope,
    ResponseFeedback,
    ResponseMeta,
)

_SKIP_STATUS = (204, 304)
_DROPPED_HEADERS = ("content-length", "content-type")


def build_meta(request: Request) -> ResponseMeta:
    """Envelope metadata; the caller's request id is echoed when present."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
    return ResponseMeta(requestId=request_id, timestamp=datetime.now(timezone.utc))


def collect_feedback(payload: Any) -> list[ResponseFeedback]:
    feedback: list[ResponseFeedback] = []
    if isinstance(payload, dict) and payload.get("embedding_quality") == EmbeddingQuality.FALLBACK.value:
        feedback.append(
            ResponseFeedback(
                code="SEARCH.DEGRADED_EMBEDDING",
                level=FeedbackLevel.WARNING,
                message="Embedding generator unavailable; ranked with the character fallback.",
            )
        )
    return feedback


class SuccessEnvelopeMiddleware(BaseHTTPMiddleware):
    """Wrap 2xx JSON responses in the shared envelope."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        if not self._should_wrap(response):
            return response

        body = await self._read_body(response)
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        if payload is None or (isinstance(payload, dict) and "success" in payload):
            # Body iterator is already consumed; rebuild the response from bytes.
            return Response(
                content=body,
                status_code=response.status_code,
                headers=self._forward_headers(response),
                media_type=response.headers.get("content-type"),
            )

        envelope = ResponseEnvelope[Any](
            success=True,
            data=payload,
            meta=build_meta(request),
            feedback=collect_feedback(payload),
        )
        return JSONResponse(
            status_code=response.status_code,
            content=jsonable_encoder(envelope, by_alias=True),
            headers=self._forward_headers(response),
        )

    @staticmethod
    async def _read_body(response: Response) -> bytes:
        body = getattr(response, "body", None)
        if body is not None:
            return body

        chunks: list[bytes] = []
        async for chunk in response.body_iterator:
            chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode())
        return b"".join(chunks)

    @staticmethod
    def _forward_headers(response: Response) -> dict[str, str]:
        return {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in _DROPPED_HEADERS
        }

    @staticmethod
    def _should_wrap(response: Response) -> bool:
        if response.status_code >= 400 or response.status_code in _SKIP_STATUS:
            return False
        return "application/json" in response.headers.get("content-type", "")
