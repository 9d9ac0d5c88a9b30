from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence

from agency_api.contacts.adapters import CancelAuditActivityRecord, WinbackActivityRecord
from agency_api.contacts.schemas import (
    ActivityType,
    Contact,
    ContactActivity,
    LinkedCancelAuditRecord,
    LinkedWinbackRecord,
    SourceModule,
)


WINBACK_ACTIVITY_TYPES: Mapping[str, ActivityType] = {
    "called": ActivityType.CALL,
    "left_vm": ActivityType.VOICEMAIL,
    "texted": ActivityType.TEXT,
    "emailed": ActivityType.EMAIL,
    "note": ActivityType.NOTE,
    "status_change": ActivityType.STATUS_CHANGE,
    "quoted": ActivityType.QUOTED,
    "won_back": ActivityType.WON_BACK,
}

CANCEL_AUDIT_ACTIVITY_TYPES: Mapping[str, ActivityType] = {
    "attempted_call": ActivityType.CALL,
    "voicemail_left": ActivityType.VOICEMAIL,
    "text_sent": ActivityType.TEXT,
    "email_sent": ActivityType.EMAIL,
    "spoke_with_client": ActivityType.CONVERSATION,
    "payment_promised": ActivityType.PAYMENT_PROMISED,
    "payment_made": ActivityType.PAYMENT_MADE,
    "note": ActivityType.NOTE,
}


def normalize_activity_type(local_type: str, table: Mapping[str, ActivityType]) -> str:
    """Unified value for ``local_type``; unknown types pass through unchanged."""

    unified = table.get(local_type)
    return unified.value if unified is not None else local_type


def normalize_winback_type(local_type: str) -> str:
    return normalize_activity_type(local_type, WINBACK_ACTIVITY_TYPES)


def normalize_cancel_audit_type(local_type: str) -> str:
    return normalize_activity_type(local_type, CANCEL_AUDIT_ACTIVITY_TYPES)


def synthesize_winback_activity(
    row: WinbackActivityRecord,
    contact_id: uuid.UUID,
    agency_id: uuid.UUID,
) -> ContactActivity:
    return ContactActivity(
        id=row.id,
        contact_id=contact_id,
        agency_id=agency_id,
        source_module=SourceModule.WINBACK,
        activity_type=normalize_winback_type(row.activity_type),
        notes=row.notes,
        created_by_display_name=row.created_by_name,
        activity_date=row.created_at,
        created_at=row.created_at,
        old_status=row.old_status,
        new_status=row.new_status,
    )


def synthesize_cancel_audit_activity(
    row: CancelAuditActivityRecord,
    contact_id: uuid.UUID,
    agency_id: uuid.UUID,
) -> ContactActivity:
    return ContactActivity(
        id=row.id,
        contact_id=contact_id,
        agency_id=agency_id,
        source_module=SourceModule.CANCEL_AUDIT,
        activity_type=normalize_cancel_audit_type(row.activity_type),
        notes=row.notes,
        created_by_display_name=row.user_display_name,
        activity_date=row.created_at,
        created_at=row.created_at,
    )


def _union(strategies: Iterable[Callable[[], Iterable[object | None]]]) -> list:
    seen: dict[object, None] = {}
    for strategy in strategies:
        for candidate in strategy():
            if candidate is None or candidate == "":
                continue
            seen.setdefault(candidate, None)
    return list(seen)


def winback_household_candidates(
    winback: Sequence[LinkedWinbackRecord],
    explicit_id: uuid.UUID | None = None,
) -> list[uuid.UUID]:
    """Household ids to read win-back activity for.

    An explicit id wins outright; linked records are only consulted without one.
    """

    if explicit_id is not None:
        return [explicit_id]
    return list(dict.fromkeys(record.id for record in winback))


def cancel_audit_key_candidates(
    contact: Contact,
    cancel_audit: Sequence[LinkedCancelAuditRecord],
    explicit_key: str | None = None,
) -> list[str]:
    # a contact can sit under several legacy keys, so every source contributes
    return _union(
        [
            lambda: [explicit_key],
            lambda: [contact.household_key],
            lambda: (record.household_key for record in cancel_audit),
        ]
    )
