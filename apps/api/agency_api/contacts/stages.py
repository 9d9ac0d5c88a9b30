from __future__ import annotations

from collections.abc import Sequence

from agency_api.contacts.schemas import (
    LinkedCancelAuditRecord,
    LinkedLQSRecord,
    LinkedRenewalRecord,
    LinkedWinbackRecord,
    LifecycleStage,
    StageView,
)


WINBACK_ACTIVE_STATUSES = frozenset({"in_progress", "untouched", "teed_up_this_week"})
WINBACK_WON_BACK_STATUS = "won_back"
CANCEL_AUDIT_ACTIVE_STATUSES = frozenset({"uncontacted", "in_progress"})
CANCEL_AUDIT_CLOSED_STATUSES = frozenset({"resolved", "lost"})
RENEWAL_ACTIVE_STATUSES = frozenset({"uncontacted", "pending"})
RENEWAL_SUCCESS_STATUS = "success"


def _lower(value: str | None) -> str:
    return (value or "").lower()


def resolve_stage(
    lqs: Sequence[LinkedLQSRecord],
    renewal: Sequence[LinkedRenewalRecord],
    cancel_audit: Sequence[LinkedCancelAuditRecord],
    winback: Sequence[LinkedWinbackRecord],
    *,
    view: StageView,
) -> LifecycleStage:
    """First matching predicate wins."""

    is_list = view == StageView.LIST
    won_back = any(record.status == WINBACK_WON_BACK_STATUS for record in winback)
    renewal_active = any(record.current_status in RENEWAL_ACTIVE_STATUSES for record in renewal)

    if any(record.status in WINBACK_ACTIVE_STATUSES for record in winback):
        return LifecycleStage.WINBACK

    if is_list and won_back:
        return LifecycleStage.WON_BACK

    if any(_lower(record.status) in CANCEL_AUDIT_ACTIVE_STATUSES for record in cancel_audit):
        return LifecycleStage.AT_RISK if is_list else LifecycleStage.CANCEL_AUDIT

    if (
        is_list
        and any(_lower(record.status) in CANCEL_AUDIT_CLOSED_STATUSES for record in cancel_audit)
        and not renewal_active
        and not won_back
    ):
        return LifecycleStage.CANCELLED

    if renewal_active:
        return LifecycleStage.RENEWAL

    if (
        any(record.current_status == RENEWAL_SUCCESS_STATUS for record in renewal)
        or any(_lower(record.status) == "sold" for record in lqs)
        or won_back
    ):
        return LifecycleStage.CUSTOMER

    if is_list:
        return LifecycleStage.LEAD

    if any(_lower(record.status) == "quoted" for record in lqs):
        return LifecycleStage.QUOTED

    return LifecycleStage.OPEN_LEAD
