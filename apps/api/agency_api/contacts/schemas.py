from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LifecycleStage(str, Enum):
    WINBACK = "winback"
    WON_BACK = "won_back"
    AT_RISK = "at_risk"
    CANCEL_AUDIT = "cancel_audit"
    CANCELLED = "cancelled"
    RENEWAL = "renewal"
    CUSTOMER = "customer"
    QUOTED = "quoted"
    OPEN_LEAD = "open_lead"
    LEAD = "lead"


class StageView(str, Enum):
    PROFILE = "profile"
    LIST = "list"


PROFILE_STAGES = frozenset(
    {
        LifecycleStage.WINBACK,
        LifecycleStage.CANCEL_AUDIT,
        LifecycleStage.RENEWAL,
        LifecycleStage.CUSTOMER,
        LifecycleStage.QUOTED,
        LifecycleStage.OPEN_LEAD,
    }
)

LIST_STAGES = frozenset(
    {
        LifecycleStage.WINBACK,
        LifecycleStage.WON_BACK,
        LifecycleStage.AT_RISK,
        LifecycleStage.CANCELLED,
        LifecycleStage.RENEWAL,
        LifecycleStage.CUSTOMER,
        LifecycleStage.LEAD,
    }
)


class SourceModule(str, Enum):
    LQS = "lqs"
    RENEWAL = "renewal"
    CANCEL_AUDIT = "cancel_audit"
    WINBACK = "winback"
    DIRECT = "direct"


class ActivityType(str, Enum):
    CALL = "call"
    VOICEMAIL = "voicemail"
    TEXT = "text"
    EMAIL = "email"
    CONVERSATION = "conversation"
    NOTE = "note"
    APPOINTMENT = "appointment"
    STATUS_CHANGE = "status_change"
    QUOTED = "quoted"
    SOLD = "sold"
    WON_BACK = "won_back"
    PAYMENT_PROMISED = "payment_promised"
    PAYMENT_MADE = "payment_made"
    REVIEW_DONE = "review_done"


ContactSort = Literal["name", "created_at", "updated_at"]
SortDirection = Literal["asc", "desc"]


class Contact(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    agency_id: UUID
    household_key: str | None
    first_name: str
    last_name: str
    phones: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)
    zip_code: str | None = None
    created_at: datetime
    updated_at: datetime


class LinkedLQSRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    status: str | None
    sold_date: datetime | None
    team_member_name: str | None
    created_at: datetime


class LinkedRenewalRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    policy_number: str | None
    product_name: str | None
    renewal_effective_date: date | None
    renewal_status: str | None
    current_status: str | None
    premium_old: Decimal | None
    premium_new: Decimal | None
    assigned_team_member_name: str | None
    created_at: datetime


class LinkedCancelAuditRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    household_key: str | None
    cancel_status: str | None
    status: str
    cancel_reason: str | None
    policy_number: str | None
    assigned_team_member_name: str | None
    created_at: datetime


class LinkedWinbackRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    status: str
    termination_date: date | None
    earliest_winback_date: date | None
    assigned_team_member_name: str | None
    created_at: datetime


class ContactActivity(BaseModel):
    """Activity in the unified vocabulary.

    ``activity_type`` holds an ``ActivityType`` value, or the pipeline-local type
    unchanged when the normalizer has no mapping for it.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    contact_id: UUID
    agency_id: UUID
    source_module: SourceModule
    activity_type: str
    notes: str | None = None
    created_by_display_name: str | None = None
    activity_date: datetime | None = None
    created_at: datetime
    old_status: str | None = None
    new_status: str | None = None


class JourneyEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: LifecycleStage
    date: datetime
    label: str
    source_module: SourceModule
    source_record_id: UUID


class ContactProfile(BaseModel):
    contact: Contact
    stage: LifecycleStage
    activities: list[ContactActivity]
    lqs: list[LinkedLQSRecord]
    renewal: list[LinkedRenewalRecord]
    cancel_audit: list[LinkedCancelAuditRecord]
    winback: list[LinkedWinbackRecord]


class ContactWithStage(Contact):
    stage: LifecycleStage
    last_activity_at: datetime | None = None


class ContactPage(BaseModel):
    contacts: list[ContactWithStage]
    next_cursor: str | None
    total: int
