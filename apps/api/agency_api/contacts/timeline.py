from __future__ import annotations

import heapq
from collections.abc import Iterable
from datetime import datetime, timezone

from agency_api.contacts.schemas import ContactActivity


UNIFIED_PRIORITY = 0
WINBACK_PRIORITY = 1
CANCEL_AUDIT_PRIORITY = 2


def event_time(activity: ContactActivity) -> datetime:
    occurred_at = activity.activity_date or activity.created_at
    if occurred_at.tzinfo is None:
        return occurred_at.replace(tzinfo=timezone.utc)
    return occurred_at


def _keyed(activities: Iterable[ContactActivity], priority: int) -> list[tuple[float, int, str, ContactActivity]]:
    keyed = [(-event_time(item).timestamp(), priority, str(item.id), item) for item in activities]
    keyed.sort(key=lambda entry: entry[:3])
    return keyed


def merge_timeline(
    unified: Iterable[ContactActivity],
    winback: Iterable[ContactActivity] = (),
    cancel_audit: Iterable[ContactActivity] = (),
) -> list[ContactActivity]:
    """Merge the unified log with synthesized sub-log rows, newest first.

    Equal timestamps order unified rows before win-back before cancel-audit, then by
    id, so the result does not depend on input order.
    """

    streams = (
        _keyed(unified, UNIFIED_PRIORITY),
        _keyed(winback, WINBACK_PRIORITY),
        _keyed(cancel_audit, CANCEL_AUDIT_PRIORITY),
    )
    merged = heapq.merge(*streams, key=lambda entry: entry[:3])
    return [entry[3] for entry in merged]
