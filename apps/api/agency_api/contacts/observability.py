from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from agency_api.context import reset_agency_scope, set_agency_scope
from agency_api.contacts.errors import ContactNotFoundError
from agency_api.metrics import observe_contact_aggregate


logger = logging.getLogger("agency_api.contacts")
tracer = trace.get_tracer("agency_api.contacts")


@contextmanager
def track_aggregate(operation: str, **attributes: Any) -> Iterator[Span]:
    """Span, outcome metric and failure log around one aggregate read.

    Exceptions are re-raised unchanged after being recorded.
    """

    started = time.perf_counter()
    outcome = "failed"
    agency_id = attributes.get("agency_id")
    scope_token = set_agency_scope(str(agency_id) if agency_id is not None else None)
    with tracer.start_as_current_span(
        f"contacts.{operation}", record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, str(value))
        try:
            yield span
            outcome = "succeeded"
        except ContactNotFoundError:
            outcome = "not_found"
            raise
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            logger.warning(
                "contacts.aggregate_failed",
                extra={
                    "operation": operation,
                    "contact_id": attributes.get("contact_id"),
                    "duration_ms": elapsed_ms(started),
                    "error": str(exc)[:500],
                },
            )
            raise
        finally:
            observe_contact_aggregate(operation=operation, status=outcome, duration=time.perf_counter() - started)
            reset_agency_scope(scope_token)


def elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
