"""
Request correlation and slow-request logging.

Every request carries an X-Request-ID (the caller's, or a fresh UUID) in
``request.state``, the response headers and the logging context var.
Resource lookups that go out to search and AI backends are expected to take
seconds, so they are held to a looser slow-request threshold than plain
API calls.
"""

import time
import uuid
from typing import Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from learnpath.api.middleware.rate_limit import classify_request
from learnpath.config import get_settings
from learnpath.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Milliseconds per rate-limit scope
SLOW_REQUEST_MS: Dict[str, int] = {
    "ai": 30_000,
    "api": 1_000,
}


def slow_request_threshold_ms(path: str, method: str, api_prefix: str) -> int:
    scope, _ = classify_request(path, method, api_prefix)
    return SLOW_REQUEST_MS[scope]


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id

            path = request.url.path
            if duration_ms > slow_request_threshold_ms(path, request.method, get_settings().api_v1_prefix):
                # Query parameters name the step for GET/DELETE resource calls
                step = {k: request.query_params[k] for k in ("step_title", "discipline") if k in request.query_params}
                logger.warning(
                    "Slow request",
                    extra={
                        "path": path,
                        "method": request.method,
                        "status_code": response.status_code,
                        "duration_ms": round(duration_ms, 1),
                        **step,
                    },
                )

            return response
        finally:
            request_id_var.reset(token)
