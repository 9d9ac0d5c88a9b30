from __future__ import annotations

import itertools
import uuid
from datetime import datetime, timezone

import pytest

from agency_api.contacts.schemas import (
    LIST_STAGES,
    PROFILE_STAGES,
    LifecycleStage,
    LinkedCancelAuditRecord,
    LinkedLQSRecord,
    LinkedRenewalRecord,
    LinkedWinbackRecord,
    StageView,
)
from agency_api.contacts.stages import resolve_stage


CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def lqs(status: str | None) -> LinkedLQSRecord:
    return LinkedLQSRecord(id=uuid.uuid4(), status=status, sold_date=None, team_member_name=None, created_at=CREATED)


def renewal(current_status: str | None) -> LinkedRenewalRecord:
    return LinkedRenewalRecord(
        id=uuid.uuid4(),
        policy_number=None,
        product_name=None,
        renewal_effective_date=None,
        renewal_status=None,
        current_status=current_status,
        premium_old=None,
        premium_new=None,
        assigned_team_member_name=None,
        created_at=CREATED,
    )


def cancel_audit(status: str) -> LinkedCancelAuditRecord:
    return LinkedCancelAuditRecord(
        id=uuid.uuid4(),
        household_key=None,
        cancel_status=None,
        status=status,
        cancel_reason=None,
        policy_number=None,
        assigned_team_member_name=None,
        created_at=CREATED,
    )


def winback(status: str) -> LinkedWinbackRecord:
    return LinkedWinbackRecord(
        id=uuid.uuid4(),
        status=status,
        termination_date=None,
        earliest_winback_date=None,
        assigned_team_member_name=None,
        created_at=CREATED,
    )


def both(lqs_records=(), renewal_records=(), cancel_records=(), winback_records=()) -> tuple[LifecycleStage, LifecycleStage]:
    args = (list(lqs_records), list(renewal_records), list(cancel_records), list(winback_records))
    return resolve_stage(*args, view=StageView.PROFILE), resolve_stage(*args, view=StageView.LIST)


@pytest.mark.parametrize(
    ("inputs", "expected_profile", "expected_list"),
    [
        ({}, LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD),
        ({"winback_records": [winback("untouched")]}, LifecycleStage.WINBACK, LifecycleStage.WINBACK),
        ({"winback_records": [winback("in_progress")]}, LifecycleStage.WINBACK, LifecycleStage.WINBACK),
        ({"winback_records": [winback("teed_up_this_week")]}, LifecycleStage.WINBACK, LifecycleStage.WINBACK),
        ({"winback_records": [winback("won_back")]}, LifecycleStage.CUSTOMER, LifecycleStage.WON_BACK),
        ({"winback_records": [winback("dismissed")]}, LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD),
        ({"cancel_records": [cancel_audit("uncontacted")]}, LifecycleStage.CANCEL_AUDIT, LifecycleStage.AT_RISK),
        ({"cancel_records": [cancel_audit("IN_PROGRESS")]}, LifecycleStage.CANCEL_AUDIT, LifecycleStage.AT_RISK),
        ({"cancel_records": [cancel_audit("resolved")]}, LifecycleStage.OPEN_LEAD, LifecycleStage.CANCELLED),
        ({"cancel_records": [cancel_audit("Lost")]}, LifecycleStage.OPEN_LEAD, LifecycleStage.CANCELLED),
        ({"renewal_records": [renewal("uncontacted")]}, LifecycleStage.RENEWAL, LifecycleStage.RENEWAL),
        ({"renewal_records": [renewal("pending")]}, LifecycleStage.RENEWAL, LifecycleStage.RENEWAL),
        ({"renewal_records": [renewal("success")]}, LifecycleStage.CUSTOMER, LifecycleStage.CUSTOMER),
        ({"renewal_records": [renewal("unsuccessful")]}, LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD),
        ({"lqs_records": [lqs("SOLD")]}, LifecycleStage.CUSTOMER, LifecycleStage.CUSTOMER),
        ({"lqs_records": [lqs("quoted")]}, LifecycleStage.QUOTED, LifecycleStage.LEAD),
        ({"lqs_records": [lqs("Lead")]}, LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD),
        ({"lqs_records": [lqs(None)]}, LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD),
    ],
)
def test_single_pipeline_stages(inputs, expected_profile, expected_list) -> None:
    assert both(**inputs) == (expected_profile, expected_list)


def test_active_winback_beats_sold_lqs_and_successful_renewal() -> None:
    stages = both(
        lqs_records=[lqs("sold")],
        renewal_records=[renewal("success")],
        winback_records=[winback("in_progress")],
    )
    assert stages == (LifecycleStage.WINBACK, LifecycleStage.WINBACK)


def test_pending_renewal_beats_sold_lqs() -> None:
    stages = both(lqs_records=[lqs("sold")], renewal_records=[renewal("pending")])
    assert stages == (LifecycleStage.RENEWAL, LifecycleStage.RENEWAL)


def test_active_cancel_audit_beats_sold_lqs() -> None:
    stages = both(lqs_records=[lqs("sold")], cancel_records=[cancel_audit("uncontacted")])
    assert stages == (LifecycleStage.CANCEL_AUDIT, LifecycleStage.AT_RISK)


def test_closed_cancel_audit_with_active_renewal_is_renewal() -> None:
    stages = both(cancel_records=[cancel_audit("resolved")], renewal_records=[renewal("pending")])
    assert stages == (LifecycleStage.RENEWAL, LifecycleStage.RENEWAL)


def test_closed_cancel_audit_after_won_back_is_won_back_in_list() -> None:
    stages = both(cancel_records=[cancel_audit("lost")], winback_records=[winback("won_back")])
    assert stages == (LifecycleStage.CUSTOMER, LifecycleStage.WON_BACK)


def test_winback_and_renewal_statuses_are_case_sensitive() -> None:
    assert both(winback_records=[winback("IN_PROGRESS")]) == (LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD)
    assert both(renewal_records=[renewal("Pending")]) == (LifecycleStage.OPEN_LEAD, LifecycleStage.LEAD)


def test_any_matching_record_among_many_counts() -> None:
    stages = both(winback_records=[winback("dismissed"), winback("untouched")])
    assert stages == (LifecycleStage.WINBACK, LifecycleStage.WINBACK)


def test_each_view_stays_within_its_vocabulary() -> None:
    lqs_options = [[], [lqs("lead")], [lqs("quoted")], [lqs("sold")]]
    renewal_options = [[], [renewal("pending")], [renewal("success")]]
    cancel_options = [[], [cancel_audit("uncontacted")], [cancel_audit("resolved")]]
    winback_options = [[], [winback("untouched")], [winback("won_back")]]

    for combo in itertools.product(lqs_options, renewal_options, cancel_options, winback_options):
        profile_stage = resolve_stage(*combo, view=StageView.PROFILE)
        list_stage = resolve_stage(*combo, view=StageView.LIST)
        assert profile_stage in PROFILE_STAGES
        assert list_stage in LIST_STAGES
        assert resolve_stage(*combo, view=StageView.PROFILE) == profile_stage
