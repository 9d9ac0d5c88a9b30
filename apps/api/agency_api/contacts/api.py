from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_api.context import get_correlation_id
from agency_api.contacts.errors import ContactNotFoundError, InvalidCursorError, InvalidStageFilterError
from agency_api.contacts.listing import ContactListService
from agency_api.contacts.profile import ContactProfileService
from agency_api.contacts.schemas import (
    Contact,
    ContactPage,
    ContactProfile,
    ContactSort,
    JourneyEvent,
    LifecycleStage,
    SortDirection,
)
from agency_api.core.auth import AuthUser, get_current_user as get_auth_user
from agency_api.core.context import get_request_context
from agency_api.core.database import get_session_factory


logger = logging.getLogger("agency_api.contacts")

router = APIRouter(prefix="/api/contacts", tags=["contacts"])

READ_PERMISSION = "contacts.read"


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


@dataclass
class StaffUser:
    user_id: str
    agency_id: uuid.UUID | None
    permissions: set[str] = field(default_factory=set)
    correlation_id: str | None = None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(get_request_context(request), "request_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def get_current_user(request: Request, auth_user: AuthUser = Depends(get_auth_user)) -> StaffUser:
    correlation_id = get_correlation_id() or getattr(get_request_context(request), "request_id", None)
    agency_id: uuid.UUID | None = None
    if auth_user.agency_id:
        try:
            agency_id = uuid.UUID(auth_user.agency_id)
        except ValueError:
            agency_id = None

    return StaffUser(
        user_id=auth_user.sub,
        agency_id=agency_id,
        permissions=set(auth_user.roles),
        correlation_id=correlation_id,
    )


def require_agency(user: StaffUser) -> uuid.UUID:
    if user.agency_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Agency scope required")
    return user.agency_id


def require_permission(user: StaffUser, permission: str) -> None:
    if permission not in user.permissions:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Missing permission: {permission}")


def get_profile_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ContactProfileService:
    return ContactProfileService(session_factory)


def get_list_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ContactListService:
    return ContactListService(session_factory)


def _failure_response(request: Request, exc: Exception, *, code: str, contact_id: uuid.UUID | None = None) -> JSONResponse:
    if isinstance(exc, ContactNotFoundError):
        return error_response(
            request,
            status_code=status.HTTP_404_NOT_FOUND,
            code="contact_not_found",
            message=str(exc),
            details={"contact_id": str(exc.contact_id)},
        )
    if isinstance(exc, InvalidCursorError):
        return error_response(
            request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="contacts_invalid_cursor",
            message=str(exc),
            details={"cursor": exc.cursor},
        )
    if isinstance(exc, InvalidStageFilterError):
        return error_response(
            request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="contacts_invalid_stage",
            message=str(exc),
            details={"stage": exc.stage},
        )
    if isinstance(exc, SQLAlchemyError):
        logger.exception(
            "contacts.source_unavailable",
            extra={"operation": code, "contact_id": str(contact_id) if contact_id else None, "error": str(exc)},
        )
        return error_response(
            request,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="contacts_source_unavailable",
            message="Contact data source unavailable",
        )
    if isinstance(exc, HTTPException):
        return error_response(
            request,
            status_code=exc.status_code,
            code=code,
            message=str(exc.detail),
            details=exc.detail,
        )
    raise exc


@router.get("", response_model=ContactPage)
async def list_contacts(
    request: Request,
    search: str | None = Query(default=None),
    stage: LifecycleStage | None = Query(default=None),
    sort: ContactSort = Query(default="name"),
    direction: SortDirection = Query(default="asc"),
    cursor: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=100),
    user: StaffUser = Depends(get_current_user),
    service: ContactListService = Depends(get_list_service),
) -> ContactPage | JSONResponse:
    try:
        agency_id = require_agency(user)
        require_permission(user, READ_PERMISSION)
        return await service.list_contacts(
            agency_id,
            search=search,
            stage_filter=stage,
            sort=sort,
            direction=direction,
            cursor=cursor,
            limit=limit,
        )
    except (HTTPException, InvalidCursorError, InvalidStageFilterError, SQLAlchemyError) as exc:
        return _failure_response(request, exc, code="contacts_list_failed")


@router.get("/lookup", response_model=Contact)
async def lookup_contact(
    request: Request,
    contact_id: uuid.UUID | None = Query(default=None),
    household_key: str | None = Query(default=None),
    phone: str | None = Query(default=None),
    email: str | None = Query(default=None),
    user: StaffUser = Depends(get_current_user),
    service: ContactProfileService = Depends(get_profile_service),
) -> Contact | JSONResponse:
    try:
        agency_id = require_agency(user)
        require_permission(user, READ_PERMISSION)
        contact = await service.find_contact(
            agency_id,
            contact_id=contact_id,
            household_key=household_key,
            phone=phone,
            email=email,
        )
        if contact is None:
            return error_response(
                request,
                status_code=status.HTTP_404_NOT_FOUND,
                code="contact_not_found",
                message="contact not found",
            )
        return contact
    except (HTTPException, SQLAlchemyError) as exc:
        return _failure_response(request, exc, code="contacts_lookup_failed", contact_id=contact_id)


@router.get("/{contact_id}", response_model=ContactProfile)
async def get_contact_profile(
    request: Request,
    contact_id: uuid.UUID,
    winback_household_id: uuid.UUID | None = Query(default=None),
    cancel_audit_household_key: str | None = Query(default=None),
    user: StaffUser = Depends(get_current_user),
    service: ContactProfileService = Depends(get_profile_service),
) -> ContactProfile | JSONResponse:
    try:
        agency_id = require_agency(user)
        require_permission(user, READ_PERMISSION)
        return await service.get_profile(
            contact_id,
            agency_id,
            explicit_winback_id=winback_household_id,
            explicit_cancel_audit_key=cancel_audit_household_key,
        )
    except (HTTPException, ContactNotFoundError, SQLAlchemyError) as exc:
        return _failure_response(request, exc, code="contacts_profile_failed", contact_id=contact_id)


@router.get("/{contact_id}/journey", response_model=list[JourneyEvent])
async def get_contact_journey(
    request: Request,
    contact_id: uuid.UUID,
    user: StaffUser = Depends(get_current_user),
    service: ContactProfileService = Depends(get_profile_service),
) -> list[JourneyEvent] | JSONResponse:
    try:
        agency_id = require_agency(user)
        require_permission(user, READ_PERMISSION)
        return await service.get_journey(contact_id, agency_id)
    except (HTTPException, ContactNotFoundError, SQLAlchemyError) as exc:
        return _failure_response(request, exc, code="contacts_journey_failed", contact_id=contact_id)
