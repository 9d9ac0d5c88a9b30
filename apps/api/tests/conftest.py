from __future__ import annotations

import uuid
from collections.abc import Generator
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session, sessionmaker

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
from agency_api.core.config import get_settings
from agency_api.core.database import Base, build_engine, build_session_factory


T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class Seeder:
    """Writes pipeline rows the way the upstream systems would, for the engine to read."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _add(self, row: Any) -> Any:
        self.session.add(row)
        self.session.commit()
        return row

    def team_member(self, agency_id: uuid.UUID, name: str) -> TeamMember:
        return self._add(TeamMember(agency_id=agency_id, name=name))

    def contact(
        self,
        agency_id: uuid.UUID,
        first_name: str = "Jane",
        last_name: str = "Doe",
        *,
        household_key: str | None = None,
        phones: list[str] | None = None,
        emails: list[str] | None = None,
        created_at: datetime = T0,
    ) -> AgencyContact:
        return self._add(
            AgencyContact(
                agency_id=agency_id,
                first_name=first_name,
                last_name=last_name,
                household_key=household_key,
                phones=phones or [],
                emails=emails or [],
                created_at=created_at,
                updated_at=created_at,
            )
        )

    def lqs(
        self,
        contact: AgencyContact,
        status: str | None,
        *,
        created_at: datetime = T0,
        team_member: TeamMember | None = None,
    ) -> LqsHousehold:
        return self._add(
            LqsHousehold(
                agency_id=contact.agency_id,
                contact_id=contact.id,
                status=status,
                team_member_id=team_member.id if team_member else None,
                created_at=created_at,
            )
        )

    def renewal(
        self,
        contact: AgencyContact,
        current_status: str | None,
        *,
        effective: date | None = None,
        created_at: datetime = T0,
        is_active: bool = True,
        team_member: TeamMember | None = None,
    ) -> RenewalRecord:
        return self._add(
            RenewalRecord(
                agency_id=contact.agency_id,
                contact_id=contact.id,
                policy_number="POL-1",
                product_name="Auto",
                renewal_effective_date=effective,
                renewal_status="open",
                current_status=current_status,
                premium_old=Decimal("100.00"),
                premium_new=Decimal("110.00"),
                is_active=is_active,
                assigned_team_member_id=team_member.id if team_member else None,
                created_at=created_at,
            )
        )

    def cancel_audit(
        self,
        contact: AgencyContact,
        status: str,
        *,
        household_key: str | None = None,
        cancel_status: str | None = None,
        created_at: datetime = T0,
        is_active: bool = True,
    ) -> CancelAuditRecord:
        return self._add(
            CancelAuditRecord(
                agency_id=contact.agency_id,
                contact_id=contact.id,
                household_key=household_key,
                status=status,
                cancel_status=cancel_status,
                is_active=is_active,
                created_at=created_at,
            )
        )

    def winback(self, contact: AgencyContact, status: str, *, created_at: datetime = T0) -> WinbackHousehold:
        return self._add(
            WinbackHousehold(agency_id=contact.agency_id, contact_id=contact.id, status=status, created_at=created_at)
        )

    def activity(
        self,
        contact: AgencyContact,
        activity_type: str,
        *,
        created_at: datetime = T0,
        activity_date: datetime | None = None,
        source_module: str = "direct",
    ) -> ContactActivityRow:
        return self._add(
            ContactActivityRow(
                agency_id=contact.agency_id,
                contact_id=contact.id,
                source_module=source_module,
                activity_type=activity_type,
                activity_date=activity_date,
                created_at=created_at,
            )
        )

    def winback_activity(
        self,
        household: WinbackHousehold,
        activity_type: str,
        *,
        created_at: datetime = T0,
    ) -> WinbackActivityRow:
        return self._add(
            WinbackActivityRow(
                agency_id=household.agency_id,
                household_id=household.id,
                activity_type=activity_type,
                created_by_name="Sam",
                created_at=created_at,
            )
        )

    def cancel_audit_activity(
        self,
        agency_id: uuid.UUID,
        household_key: str,
        activity_type: str,
        *,
        created_at: datetime = T0,
    ) -> CancelAuditActivityRow:
        return self._add(
            CancelAuditActivityRow(
                agency_id=agency_id,
                household_key=household_key,
                activity_type=activity_type,
                user_display_name="Alex",
                created_at=created_at,
            )
        )


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "contacts.db"


@pytest.fixture()
def db_session(database_path: Path) -> Generator[Session, None, None]:
    engine = create_engine(f"sqlite+pysqlite:///{database_path}")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(db_session: Session, database_path: Path) -> async_sessionmaker[AsyncSession]:
    # NullPool: every read opens its own connection, whichever event loop runs it
    engine = build_engine(f"sqlite+aiosqlite:///{database_path}", pool_mode="null")
    return build_session_factory(engine)


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture()
def agency_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def other_agency_id() -> uuid.UUID:
    return uuid.uuid4()
