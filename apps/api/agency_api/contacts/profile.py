from __future__ import annotations

import logging
import time
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_api.contacts.adapters import (
    ActivityLogReader,
    CancelAuditActivityReader,
    CancelAuditAdapter,
    ContactReader,
    LqsAdapter,
    RenewalAdapter,
    WinbackActivityReader,
    WinbackAdapter,
)
from agency_api.contacts.errors import ContactNotFoundError
from agency_api.contacts.journey import build_journey
from agency_api.contacts.normalizer import (
    cancel_audit_key_candidates,
    synthesize_cancel_audit_activity,
    synthesize_winback_activity,
    winback_household_candidates,
)
from agency_api.contacts.observability import elapsed_ms, track_aggregate
from agency_api.contacts.schemas import Contact, ContactProfile, JourneyEvent, StageView
from agency_api.contacts.stages import resolve_stage
from agency_api.contacts.timeline import merge_timeline
from agency_api.core.concurrency import fan_out
from agency_api.core.config import Settings, get_settings
from agency_api.metrics import observe_stage_resolved


logger = logging.getLogger("agency_api.contacts")


class ContactProfileService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.contacts = ContactReader(session_factory)
        self.activity_log = ActivityLogReader(session_factory)
        self.lqs = LqsAdapter(session_factory)
        self.renewal = RenewalAdapter(session_factory)
        self.cancel_audit = CancelAuditAdapter(session_factory)
        self.winback = WinbackAdapter(session_factory)
        self.winback_activity = WinbackActivityReader(session_factory)
        self.cancel_audit_activity = CancelAuditActivityReader(session_factory)
        self.activity_log_window = settings.activity_log_window
        self.sub_log_window = settings.sub_log_window
        self.max_concurrency = settings.aggregate_max_concurrency

    async def _require_contact(self, contact_id: uuid.UUID, agency_id: uuid.UUID) -> Contact:
        contact = await self.contacts.get(contact_id, agency_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)
        return contact

    async def get_profile(
        self,
        contact_id: uuid.UUID,
        agency_id: uuid.UUID,
        *,
        explicit_winback_id: uuid.UUID | None = None,
        explicit_cancel_audit_key: str | None = None,
    ) -> ContactProfile:
        started = time.perf_counter()
        with track_aggregate("profile", contact_id=contact_id, agency_id=agency_id) as span:
            contact = await self._require_contact(contact_id, agency_id)

            activities, lqs, renewal, cancel_audit, winback = await fan_out(
                self.activity_log.fetch(contact_id, agency_id, limit=self.activity_log_window),
                self.lqs.fetch(contact_id, agency_id),
                self.renewal.fetch(contact_id, agency_id),
                self.cancel_audit.fetch(contact_id, agency_id),
                self.winback.fetch(contact_id, agency_id),
                max_concurrency=self.max_concurrency,
            )

            household_ids = winback_household_candidates(winback, explicit_winback_id)
            household_keys = cancel_audit_key_candidates(contact, cancel_audit, explicit_cancel_audit_key)
            winback_rows, cancel_audit_rows = await fan_out(
                self.winback_activity.fetch(household_ids, agency_id, limit=self.sub_log_window),
                self.cancel_audit_activity.fetch(household_keys, agency_id, limit=self.sub_log_window),
                max_concurrency=self.max_concurrency,
            )

            timeline = merge_timeline(
                activities,
                [synthesize_winback_activity(row, contact_id, agency_id) for row in winback_rows],
                [synthesize_cancel_audit_activity(row, contact_id, agency_id) for row in cancel_audit_rows],
            )
            stage = resolve_stage(lqs, renewal, cancel_audit, winback, view=StageView.PROFILE)

            span.set_attribute("stage", stage.value)
            observe_stage_resolved(view=StageView.PROFILE.value, stage=stage.value)
            logger.info(
                "contacts.profile_resolved",
                extra={
                    "operation": "profile",
                    "contact_id": str(contact_id),
                    "stage": stage.value,
                    "view": StageView.PROFILE.value,
                    "row_count": len(timeline),
                    "duration_ms": elapsed_ms(started),
                },
            )

        return ContactProfile(
            contact=contact,
            stage=stage,
            activities=timeline,
            lqs=lqs,
            renewal=renewal,
            cancel_audit=cancel_audit,
            winback=winback,
        )

    async def get_journey(self, contact_id: uuid.UUID, agency_id: uuid.UUID) -> list[JourneyEvent]:
        with track_aggregate("journey", contact_id=contact_id, agency_id=agency_id) as span:
            await self._require_contact(contact_id, agency_id)
            lqs, renewal, cancel_audit, winback = await fan_out(
                self.lqs.fetch(contact_id, agency_id),
                self.renewal.fetch(contact_id, agency_id),
                self.cancel_audit.fetch(contact_id, agency_id),
                self.winback.fetch(contact_id, agency_id),
                max_concurrency=self.max_concurrency,
            )
            events = build_journey(lqs, renewal, cancel_audit, winback)
            span.set_attribute("row_count", len(events))
        return events

    async def find_contact(
        self,
        agency_id: uuid.UUID,
        *,
        contact_id: uuid.UUID | None = None,
        household_key: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> Contact | None:
        return await self.contacts.find_by_identifier(
            agency_id,
            contact_id=contact_id,
            household_key=household_key,
            phone=phone,
            email=email,
        )
