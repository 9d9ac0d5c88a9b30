from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import DateTime, Select, String, and_, cast, func, or_, select, type_coerce
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_api.contacts.models import (
    AgencyContact,
    CancelAuditActivityRow,
    CancelAuditRecord,
    ContactActivityRow,
    LqsHousehold,
    RenewalRecord,
    TeamMember,
    WinbackActivityRow,
    WinbackHousehold,
)
from agency_api.contacts.schemas import (
    Contact,
    ContactActivity,
    ContactSort,
    LinkedCancelAuditRecord,
    LinkedLQSRecord,
    LinkedRenewalRecord,
    LinkedWinbackRecord,
    SortDirection,
)


RecordT = TypeVar("RecordT")

_NON_DIGIT_RE = re.compile(r"[^0-9]")
_PHONE_PUNCTUATION = ("-", " ", "(", ")", ".", "+")


@dataclass(frozen=True, slots=True)
class WinbackActivityRecord:
    id: uuid.UUID
    household_id: uuid.UUID
    activity_type: str
    notes: str | None
    created_by_name: str | None
    old_status: str | None
    new_status: str | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class CancelAuditActivityRecord:
    id: uuid.UUID
    record_id: uuid.UUID | None
    household_key: str
    activity_type: str
    notes: str | None
    user_display_name: str | None
    created_at: datetime


class AgencyScopedRepository:
    """Base for every read in this package: one short-lived session per query, and
    every query restricted to the caller's agency."""

    model: Any = None

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def apply_scope_query(self, query: Select[Any], agency_id: uuid.UUID) -> Select[Any]:
        return query.where(self.model.agency_id == agency_id)

    async def _all(self, query: Select[Any]) -> Sequence[Any]:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return result.all()


class SourceAdapter(AgencyScopedRepository, Generic[RecordT]):
    """Read-only projection of one pipeline's records, keyed by contact id.

    ``fetch`` goes through ``fetch_many`` so the single-contact and batch paths
    share one query shape and one projection.
    """

    staff_column: str = "assigned_team_member_id"

    def _base_query(self) -> Select[Any]:
        staff_id = getattr(self.model, self.staff_column)
        return select(self.model, TeamMember.name).outerjoin(TeamMember, TeamMember.id == staff_id)

    def _filter(self, query: Select[Any]) -> Select[Any]:
        return query

    def _order_by(self) -> tuple[Any, ...]:
        return (self.model.created_at.desc(), self.model.id.desc())

    def _project(self, row: Any, staff_name: str | None) -> RecordT:
        raise NotImplementedError

    async def fetch(self, contact_id: uuid.UUID, agency_id: uuid.UUID) -> list[RecordT]:
        grouped = await self.fetch_many([contact_id], agency_id)
        return grouped[contact_id]

    async def fetch_many(
        self,
        contact_ids: Iterable[uuid.UUID],
        agency_id: uuid.UUID,
    ) -> dict[uuid.UUID, list[RecordT]]:
        grouped: dict[uuid.UUID, list[RecordT]] = {contact_id: [] for contact_id in contact_ids}
        if not grouped:
            return grouped

        query = self.apply_scope_query(self._base_query(), agency_id)
        query = self._filter(query.where(self.model.contact_id.in_(list(grouped))))
        rows = await self._all(query.order_by(*self._order_by()))
        for row, staff_name in rows:
            grouped[row.contact_id].append(self._project(row, staff_name))
        return grouped


class LqsAdapter(SourceAdapter[LinkedLQSRecord]):
    model = LqsHousehold
    staff_column = "team_member_id"

    def _project(self, row: LqsHousehold, staff_name: str | None) -> LinkedLQSRecord:
        is_sold = (row.status or "").lower() == "sold"
        return LinkedLQSRecord(
            id=row.id,
            status=row.status,
            sold_date=row.created_at if is_sold else None,
            team_member_name=staff_name,
            created_at=row.created_at,
        )


class RenewalAdapter(SourceAdapter[LinkedRenewalRecord]):
    model = RenewalRecord

    def _filter(self, query: Select[Any]) -> Select[Any]:
        return query.where(RenewalRecord.is_active.is_(True))

    def _order_by(self) -> tuple[Any, ...]:
        return (
            RenewalRecord.renewal_effective_date.desc().nulls_last(),
            RenewalRecord.created_at.desc(),
            RenewalRecord.id.desc(),
        )

    def _project(self, row: RenewalRecord, staff_name: str | None) -> LinkedRenewalRecord:
        return LinkedRenewalRecord(
            id=row.id,
            policy_number=row.policy_number,
            product_name=row.product_name,
            renewal_effective_date=row.renewal_effective_date,
            renewal_status=row.renewal_status,
            current_status=row.current_status,
            premium_old=row.premium_old,
            premium_new=row.premium_new,
            assigned_team_member_name=staff_name,
            created_at=row.created_at,
        )


class CancelAuditAdapter(SourceAdapter[LinkedCancelAuditRecord]):
    model = CancelAuditRecord

    def _filter(self, query: Select[Any]) -> Select[Any]:
        return query.where(CancelAuditRecord.is_active.is_(True))

    def _project(self, row: CancelAuditRecord, staff_name: str | None) -> LinkedCancelAuditRecord:
        return LinkedCancelAuditRecord(
            id=row.id,
            household_key=row.household_key,
            cancel_status=row.cancel_status,
            status=row.status,
            cancel_reason=row.cancel_reason,
            policy_number=row.policy_number,
            assigned_team_member_name=staff_name,
            created_at=row.created_at,
        )


class WinbackAdapter(SourceAdapter[LinkedWinbackRecord]):
    model = WinbackHousehold

    def _project(self, row: WinbackHousehold, staff_name: str | None) -> LinkedWinbackRecord:
        return LinkedWinbackRecord(
            id=row.id,
            status=row.status,
            termination_date=row.termination_date,
            earliest_winback_date=row.earliest_winback_date,
            assigned_team_member_name=staff_name,
            created_at=row.created_at,
        )


class ActivityLogReader(AgencyScopedRepository):
    model = ContactActivityRow

    @staticmethod
    def _event_time() -> Any:
        return type_coerce(
            func.coalesce(ContactActivityRow.activity_date, ContactActivityRow.created_at),
            DateTime(timezone=True),
        )

    async def fetch(self, contact_id: uuid.UUID, agency_id: uuid.UUID, *, limit: int) -> list[ContactActivity]:
        query = self.apply_scope_query(select(ContactActivityRow), agency_id)
        query = (
            query.where(ContactActivityRow.contact_id == contact_id)
            .order_by(self._event_time().desc(), ContactActivityRow.created_at.desc(), ContactActivityRow.id.desc())
            .limit(limit)
        )
        rows = await self._all(query)
        return [ContactActivity.model_validate(row) for (row,) in rows]

    async def latest_many(
        self,
        contact_ids: Iterable[uuid.UUID],
        agency_id: uuid.UUID,
    ) -> dict[uuid.UUID, datetime]:
        ids = list(dict.fromkeys(contact_ids))
        if not ids:
            return {}

        latest = type_coerce(func.max(self._event_time()), DateTime(timezone=True))
        query = self.apply_scope_query(select(ContactActivityRow.contact_id, latest), agency_id)
        query = query.where(ContactActivityRow.contact_id.in_(ids)).group_by(ContactActivityRow.contact_id)
        rows = await self._all(query)
        return {contact_id: occurred_at for contact_id, occurred_at in rows if occurred_at is not None}


class WinbackActivityReader(AgencyScopedRepository):
    model = WinbackActivityRow

    async def fetch(
        self,
        household_ids: Sequence[uuid.UUID],
        agency_id: uuid.UUID,
        *,
        limit: int,
    ) -> list[WinbackActivityRecord]:
        if not household_ids:
            return []

        query = self.apply_scope_query(select(WinbackActivityRow), agency_id)
        query = (
            query.where(WinbackActivityRow.household_id.in_(list(household_ids)))
            .order_by(WinbackActivityRow.created_at.desc(), WinbackActivityRow.id.desc())
            .limit(limit)
        )
        rows = await self._all(query)
        return [
            WinbackActivityRecord(
                id=row.id,
                household_id=row.household_id,
                activity_type=row.activity_type,
                notes=row.notes,
                created_by_name=row.created_by_name,
                old_status=row.old_status,
                new_status=row.new_status,
                created_at=row.created_at,
            )
            for (row,) in rows
        ]


class CancelAuditActivityReader(AgencyScopedRepository):
    model = CancelAuditActivityRow

    async def fetch(
        self,
        household_keys: Sequence[str],
        agency_id: uuid.UUID,
        *,
        limit: int,
    ) -> list[CancelAuditActivityRecord]:
        if not household_keys:
            return []

        query = self.apply_scope_query(select(CancelAuditActivityRow), agency_id)
        query = (
            query.where(CancelAuditActivityRow.household_key.in_(list(household_keys)))
            .order_by(CancelAuditActivityRow.created_at.desc(), CancelAuditActivityRow.id.desc())
            .limit(limit)
        )
        rows = await self._all(query)
        return [
            CancelAuditActivityRecord(
                id=row.id,
                record_id=row.record_id,
                household_key=row.household_key,
                activity_type=row.activity_type,
                notes=row.notes,
                user_display_name=row.user_display_name,
                created_at=row.created_at,
            )
            for (row,) in rows
        ]


def _phone_digits_expression() -> Any:
    expression: Any = cast(AgencyContact.phones, String)
    for character in _PHONE_PUNCTUATION:
        expression = func.replace(expression, character, "")
    return expression


def build_search_clause(search: str) -> Any:
    """Match every word against first/last name, the digits against phones, or the raw
    text against emails."""

    words = [word for word in search.lower().split() if word]
    clauses: list[Any] = []
    if words:
        clauses.append(
            and_(
                *[
                    or_(AgencyContact.first_name.ilike(f"%{word}%"), AgencyContact.last_name.ilike(f"%{word}%"))
                    for word in words
                ]
            )
        )

    digits = _NON_DIGIT_RE.sub("", search)
    if digits:
        clauses.append(_phone_digits_expression().like(f"%{digits}%"))

    clauses.append(cast(AgencyContact.emails, String).ilike(f"%{search.strip()}%"))
    return or_(*clauses)


_SORT_COLUMNS: dict[str, tuple[Any, ...]] = {
    "name": (AgencyContact.last_name, AgencyContact.first_name),
    "created_at": (AgencyContact.created_at,),
    "updated_at": (AgencyContact.updated_at,),
}


class ContactReader(AgencyScopedRepository):
    model = AgencyContact

    async def get(self, contact_id: uuid.UUID, agency_id: uuid.UUID) -> Contact | None:
        query = self.apply_scope_query(select(AgencyContact), agency_id).where(AgencyContact.id == contact_id)
        rows = await self._all(query)
        if not rows:
            return None
        return Contact.model_validate(rows[0][0])

    async def page(
        self,
        agency_id: uuid.UUID,
        *,
        search: str | None,
        sort: ContactSort,
        direction: SortDirection,
        offset: int,
        limit: int,
    ) -> tuple[list[Contact], int]:
        filtered = self.apply_scope_query(select(AgencyContact), agency_id)
        if search and search.strip():
            filtered = filtered.where(build_search_clause(search))

        columns = _SORT_COLUMNS[sort]
        ordering = [column.desc() if direction == "desc" else column.asc() for column in columns]
        page_query = filtered.order_by(*ordering, AgencyContact.id.asc()).offset(offset).limit(limit)
        count_query = select(func.count()).select_from(filtered.subquery())

        async with self._session_factory() as session:
            total = int((await session.execute(count_query)).scalar_one())
            contacts = (await session.execute(page_query)).scalars().all()
        return [Contact.model_validate(contact) for contact in contacts], total

    async def find_by_identifier(
        self,
        agency_id: uuid.UUID,
        *,
        contact_id: uuid.UUID | None = None,
        household_key: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> Contact | None:
        if contact_id is not None:
            found = await self.get(contact_id, agency_id)
            if found is not None:
                return found

        candidates: list[Any] = []
        if household_key:
            candidates.append(AgencyContact.household_key == household_key)
        if phone:
            candidates.append(cast(AgencyContact.phones, String).like(f'%"{phone}"%'))
        if email:
            candidates.append(cast(AgencyContact.emails, String).ilike(f'%"{email}"%'))

        for condition in candidates:
            query = (
                self.apply_scope_query(select(AgencyContact), agency_id)
                .where(condition)
                .order_by(AgencyContact.created_at.asc(), AgencyContact.id.asc())
                .limit(1)
            )
            rows = await self._all(query)
            if rows:
                return Contact.model_validate(rows[0][0])
        return None
