from __future__ import annotations

import uuid

import pytest
from conftest import Seeder, at
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_api.contacts.errors import ContactNotFoundError
from agency_api.contacts.profile import ContactProfileService
from agency_api.contacts.schemas import LifecycleStage, SourceModule


@pytest.fixture()
def service(session_factory: async_sessionmaker[AsyncSession]) -> ContactProfileService:
    return ContactProfileService(session_factory)


@pytest.mark.asyncio
async def test_profile_merges_unified_and_sub_log_activity(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id, household_key="HH-MAIN")
    seed.lqs(contact, "sold", created_at=at(0))
    household = seed.winback(contact, "won_back", created_at=at(1))
    seed.cancel_audit(contact, "resolved", household_key="HH-LEGACY", created_at=at(2))

    logged = seed.activity(contact, "call", created_at=at(30))
    winback_row = seed.winback_activity(household, "left_vm", created_at=at(20))
    main_key_row = seed.cancel_audit_activity(agency_id, "HH-MAIN", "payment_made", created_at=at(10))
    legacy_key_row = seed.cancel_audit_activity(agency_id, "HH-LEGACY", "custom_xyz", created_at=at(5))

    profile = await service.get_profile(contact.id, agency_id)

    assert profile.contact.id == contact.id
    assert profile.stage == LifecycleStage.CUSTOMER
    assert [activity.id for activity in profile.activities] == [
        logged.id,
        winback_row.id,
        main_key_row.id,
        legacy_key_row.id,
    ]
    sources = [activity.source_module for activity in profile.activities]
    assert sources == [SourceModule.DIRECT, SourceModule.WINBACK, SourceModule.CANCEL_AUDIT, SourceModule.CANCEL_AUDIT]
    types = [activity.activity_type for activity in profile.activities]
    assert types == ["call", "voicemail", "payment_made", "custom_xyz"]
    assert all(activity.contact_id == contact.id for activity in profile.activities)
    assert len(profile.lqs) == 1 and len(profile.winback) == 1 and len(profile.cancel_audit) == 1


@pytest.mark.asyncio
async def test_explicit_identifiers_select_sub_logs(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id)
    linked = seed.winback(contact, "untouched")
    unlinked_contact = seed.contact(agency_id, "Other")
    unlinked = seed.winback(unlinked_contact, "untouched")
    seed.winback_activity(linked, "called")
    explicit_row = seed.winback_activity(unlinked, "emailed")
    key_row = seed.cancel_audit_activity(agency_id, "HH-EXPLICIT", "text_sent")

    profile = await service.get_profile(
        contact.id,
        agency_id,
        explicit_winback_id=unlinked.id,
        explicit_cancel_audit_key="HH-EXPLICIT",
    )

    assert {activity.id for activity in profile.activities} == {explicit_row.id, key_row.id}


@pytest.mark.asyncio
async def test_contact_without_sub_log_identifiers_has_no_synthesized_rows(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id)
    seed.cancel_audit_activity(agency_id, "HH-SOMEONE-ELSE", "note")

    profile = await service.get_profile(contact.id, agency_id)

    assert profile.activities == []
    assert profile.stage == LifecycleStage.OPEN_LEAD


@pytest.mark.asyncio
async def test_profile_is_idempotent(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id, household_key="HH-1")
    seed.renewal(contact, "pending")
    seed.cancel_audit(contact, "uncontacted", household_key="HH-1")
    for minute in range(3):
        seed.activity(contact, "note", created_at=at(minute))
        seed.cancel_audit_activity(agency_id, "HH-1", "note", created_at=at(minute))

    first = await service.get_profile(contact.id, agency_id)
    second = await service.get_profile(contact.id, agency_id)

    assert first.stage == LifecycleStage.CANCEL_AUDIT
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.asyncio
async def test_contact_from_another_agency_is_not_found(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
    other_agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id)

    with pytest.raises(ContactNotFoundError):
        await service.get_profile(contact.id, other_agency_id)
    with pytest.raises(ContactNotFoundError):
        await service.get_journey(contact.id, other_agency_id)
    with pytest.raises(ContactNotFoundError):
        await service.get_profile(uuid.uuid4(), agency_id)


@pytest.mark.asyncio
async def test_adapter_failure_fails_the_whole_profile(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    contact = seed.contact(agency_id)
    seed.lqs(contact, "sold")

    async def broken_fetch(contact_id: uuid.UUID, agency_id: uuid.UUID) -> list:
        raise OperationalError("SELECT renewal_records", {}, Exception("connection reset"))

    monkeypatch.setattr(service.renewal, "fetch", broken_fetch)

    with pytest.raises(OperationalError):
        await service.get_profile(contact.id, agency_id)


@pytest.mark.asyncio
async def test_journey_for_contact(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id)
    seed.lqs(contact, "lead", created_at=at(0))
    seed.lqs(contact, "quoted", created_at=at(10))
    seed.winback(contact, "untouched", created_at=at(20))

    events = await service.get_journey(contact.id, agency_id)

    assert [(event.stage, event.label) for event in events] == [
        (LifecycleStage.OPEN_LEAD, "Lead Created"),
        (LifecycleStage.QUOTED, "Quote Provided"),
        (LifecycleStage.WINBACK, "Win-back Started"),
    ]


@pytest.mark.asyncio
async def test_find_contact_by_household_key(
    seed: Seeder,
    service: ContactProfileService,
    agency_id: uuid.UUID,
) -> None:
    contact = seed.contact(agency_id, household_key="HH-LOOKUP")

    found = await service.find_contact(agency_id, household_key="HH-LOOKUP")

    assert found is not None
    assert found.id == contact.id
