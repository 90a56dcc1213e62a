"""Request-scoped context for logs and traces."""
from __future__ import annotations

from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from studymentor.core.context import request_id_ctx_var, user_id_ctx_var

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the request id and the acting user id, and echo the request id back.

    Write routes carry ``user_id`` in the JSON body, which is not parsed here;
    only the query-string form used by read routes is bound.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        tokens = (
            request_id_ctx_var.set(request_id),
            user_id_ctx_var.set(request.query_params.get("user_id")),
        )

        try:
            response = await call_next(request)
        finally:
            user_id_ctx_var.reset(tokens[1])
            request_id_ctx_var.reset(tokens[0])

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
