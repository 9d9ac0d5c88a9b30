from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from agency_api.context import reset_agency_scope, set_agency_scope
from agency_api.core.context import get_request_context
from agency_api.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("agency_api.request")

# probes and scrapes are counted but only logged at debug
_QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        method = request.method
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            path = resolve_http_path_label(request)
            duration = time.perf_counter() - started
            observe_http_request(method=method, path=path, status=500, duration=duration)
            logger.error(
                "http.error",
                exc_info=True,
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
            raise

        # the route is only known once routing has run
        path = resolve_http_path_label(request)
        duration = time.perf_counter() - started
        observe_http_request(method=method, path=path, status=response.status_code, duration=duration)
        context = get_request_context(request)
        level = logging.DEBUG if path in _QUIET_PATHS else logging.INFO
        if response.status_code >= 500:
            level = logging.WARNING
        scope_token = set_agency_scope(getattr(context, "agency_id", None))
        try:
            logger.log(
                level,
                "http.request",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration * 1000, 2),
                    "user_id": getattr(context, "user_id", None),
                },
            )
        finally:
            reset_agency_scope(scope_token)
        return response
