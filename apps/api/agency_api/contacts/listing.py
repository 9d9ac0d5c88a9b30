from __future__ import annotations

import logging
import time
import uuid
from collections import Counter

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_api.contacts.adapters import (
    ActivityLogReader,
    CancelAuditAdapter,
    ContactReader,
    LqsAdapter,
    RenewalAdapter,
    WinbackAdapter,
)
from agency_api.contacts.errors import InvalidCursorError, InvalidStageFilterError
from agency_api.contacts.observability import elapsed_ms, track_aggregate
from agency_api.contacts.schemas import (
    LIST_STAGES,
    ContactPage,
    ContactSort,
    ContactWithStage,
    LifecycleStage,
    SortDirection,
    StageView,
)
from agency_api.contacts.stages import resolve_stage
from agency_api.core.concurrency import fan_out
from agency_api.core.config import Settings, get_settings
from agency_api.metrics import observe_stage_resolved


logger = logging.getLogger("agency_api.contacts")

MAX_CURSOR_OFFSET = 2**63 - 1
_MAX_CURSOR_DIGITS = len(str(MAX_CURSOR_OFFSET))


def decode_cursor(cursor: str | None) -> int:
    if cursor is None or cursor == "":
        return 0
    # offsets are bound to a signed 64-bit store integer
    if len(cursor) > _MAX_CURSOR_DIGITS or not (cursor.isascii() and cursor.isdigit()):
        raise InvalidCursorError(cursor)
    offset = int(cursor)
    if offset > MAX_CURSOR_OFFSET:
        raise InvalidCursorError(cursor)
    return offset


def encode_cursor(offset: int) -> str:
    return str(offset)


class ContactListService:
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
        self.page_size = settings.contacts_page_size
        self.max_page_size = settings.contacts_max_page_size
        self.max_concurrency = settings.aggregate_max_concurrency

    async def list_contacts(
        self,
        agency_id: uuid.UUID,
        *,
        search: str | None = None,
        stage_filter: LifecycleStage | None = None,
        sort: ContactSort = "name",
        direction: SortDirection = "asc",
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ContactPage:
        if stage_filter is not None and stage_filter not in LIST_STAGES:
            raise InvalidStageFilterError(stage_filter.value)
        offset = decode_cursor(cursor)
        page_size = max(1, min(limit or self.page_size, self.max_page_size))
        started = time.perf_counter()

        stage_label = stage_filter.value if stage_filter is not None else None
        with track_aggregate("list", agency_id=agency_id, stage_filter=stage_label) as span:
            contacts, total = await self.contacts.page(
                agency_id,
                search=search,
                sort=sort,
                direction=direction,
                offset=offset,
                limit=page_size,
            )
            contact_ids = [contact.id for contact in contacts]

            lqs, renewal, cancel_audit, winback, last_activity = await fan_out(
                self.lqs.fetch_many(contact_ids, agency_id),
                self.renewal.fetch_many(contact_ids, agency_id),
                self.cancel_audit.fetch_many(contact_ids, agency_id),
                self.winback.fetch_many(contact_ids, agency_id),
                self.activity_log.latest_many(contact_ids, agency_id),
                max_concurrency=self.max_concurrency,
            )

            resolved: list[ContactWithStage] = []
            stage_counts: Counter[LifecycleStage] = Counter()
            for contact in contacts:
                stage = resolve_stage(
                    lqs[contact.id],
                    renewal[contact.id],
                    cancel_audit[contact.id],
                    winback[contact.id],
                    view=StageView.LIST,
                )
                stage_counts[stage] += 1
                # filtered after resolution; total and next_cursor ignore it
                if stage_filter is not None and stage != stage_filter:
                    continue
                resolved.append(
                    ContactWithStage(
                        **contact.model_dump(),
                        stage=stage,
                        last_activity_at=last_activity.get(contact.id),
                    )
                )

            next_offset = offset + len(contacts)
            next_cursor = encode_cursor(next_offset) if next_offset < total else None

            for stage, count in stage_counts.items():
                observe_stage_resolved(view=StageView.LIST.value, stage=stage.value, count=count)
            span.set_attribute("row_count", len(resolved))
            logger.info(
                "contacts.list_resolved",
                extra={
                    "operation": "list",
                    "view": StageView.LIST.value,
                    "stage": stage_label,
                    "row_count": len(resolved),
                    "duration_ms": elapsed_ms(started),
                },
            )

        return ContactPage(contacts=resolved, next_cursor=next_cursor, total=total)
