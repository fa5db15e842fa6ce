from __future__ import annotations

import uuid

from fastapi.responses import JSONResponse
from starlette.middleware import base as middleware_base
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from mobile_pricing.api.errors import build_error_payload

REQUEST_ID_HEADER = "X-Request-Id"
API_PREFIX = "/v1/"


class RequestIdMiddleware(middleware_base.BaseHTTPMiddleware):
    """Tag every request and response with a request ID for support lookups."""

    async def dispatch(
        self,
        request: Request,
        call_next: middleware_base.RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _payload_too_large(max_bytes: int, actual: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content=build_error_payload(
            "INVALID_REQUEST",
            "Request body too large",
            {"max_body_bytes": max_bytes, "content_length": actual},
        ),
    )


def _parse_content_length(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class BodySizeLimitMiddleware(middleware_base.BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        """Reject calculation requests whose body exceeds ``max_body_bytes``."""
        super().__init__(app)
        self._max_body_bytes = max_body_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: middleware_base.RequestResponseEndpoint,
    ) -> Response:
        if not self._should_check(request):
            return await call_next(request)

        declared = _parse_content_length(request.headers.get("content-length"))
        if declared is not None and declared > self._max_body_bytes:
            return _payload_too_large(self._max_body_bytes, declared)

        body = await request.body()
        if len(body) > self._max_body_bytes:
            return _payload_too_large(self._max_body_bytes, len(body))

        async def receive() -> dict[str, object]:
            return {"type": "http.request", "body": body, "more_body": False}

        return await call_next(Request(request.scope, receive))

    @staticmethod
    def _should_check(request: Request) -> bool:
        # the calculation endpoints are the only ones that accept a body
        return request.method == "POST" and request.url.path.startswith(API_PREFIX)
