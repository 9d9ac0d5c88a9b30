from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time, timezone

from agency_api.contacts.schemas import (
    JourneyEvent,
    LifecycleStage,
    LinkedCancelAuditRecord,
    LinkedLQSRecord,
    LinkedRenewalRecord,
    LinkedWinbackRecord,
    SourceModule,
)


_SOURCE_ORDER = {
    SourceModule.LQS: 0,
    SourceModule.RENEWAL: 1,
    SourceModule.CANCEL_AUDIT: 2,
    SourceModule.WINBACK: 3,
}

_LQS_MILESTONES = {
    "lead": (LifecycleStage.OPEN_LEAD, "Lead Created"),
    "quoted": (LifecycleStage.QUOTED, "Quote Provided"),
    "sold": (LifecycleStage.CUSTOMER, "Policy Sold"),
}


def as_utc(value: date | datetime) -> datetime:
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _event(
    stage: LifecycleStage,
    occurred_at: date | datetime,
    label: str,
    source: SourceModule,
    record_id,
) -> JourneyEvent:
    return JourneyEvent(
        stage=stage,
        date=as_utc(occurred_at),
        label=label,
        source_module=source,
        source_record_id=record_id,
    )


def build_journey(
    lqs: Sequence[LinkedLQSRecord],
    renewal: Sequence[LinkedRenewalRecord],
    cancel_audit: Sequence[LinkedCancelAuditRecord],
    winback: Sequence[LinkedWinbackRecord],
) -> list[JourneyEvent]:
    """Milestones at which the contact entered a lifecycle stage, oldest first.

    At most one event per stage-entering condition per record. Renewal completion is
    dated by the effective date, falling back to the record's creation time when the
    renewal has none.
    """

    events: list[JourneyEvent] = []

    for record in sorted(lqs, key=lambda item: as_utc(item.created_at)):
        milestone = _LQS_MILESTONES.get((record.status or "").lower())
        if milestone is not None:
            stage, label = milestone
            events.append(_event(stage, record.created_at, label, SourceModule.LQS, record.id))

    for record in sorted(renewal, key=lambda item: as_utc(item.created_at)):
        events.append(
            _event(LifecycleStage.RENEWAL, record.created_at, "Renewal Pending", SourceModule.RENEWAL, record.id)
        )
        if record.current_status == "success":
            completed_at = record.renewal_effective_date or record.created_at
            events.append(
                _event(LifecycleStage.CUSTOMER, completed_at, "Renewal Completed", SourceModule.RENEWAL, record.id)
            )

    for record in sorted(cancel_audit, key=lambda item: as_utc(item.created_at)):
        events.append(
            _event(
                LifecycleStage.CANCEL_AUDIT,
                record.created_at,
                "Cancel Request",
                SourceModule.CANCEL_AUDIT,
                record.id,
            )
        )
        if (record.cancel_status or "").lower() == "saved":
            events.append(
                _event(LifecycleStage.CUSTOMER, record.created_at, "Account Saved", SourceModule.CANCEL_AUDIT, record.id)
            )

    for record in sorted(winback, key=lambda item: as_utc(item.created_at)):
        events.append(
            _event(LifecycleStage.WINBACK, record.created_at, "Win-back Started", SourceModule.WINBACK, record.id)
        )
        if record.status == "won_back":
            events.append(
                _event(LifecycleStage.CUSTOMER, record.created_at, "Customer Won Back", SourceModule.WINBACK, record.id)
            )

    events.sort(key=lambda event: (event.date, _SOURCE_ORDER[event.source_module], str(event.source_record_id)))
    return events
