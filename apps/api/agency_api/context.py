from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
agency_scope_var: ContextVar[str | None] = ContextVar("agency_scope", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_agency_scope(value: str | None) -> Token[str | None]:
    return agency_scope_var.set(value)


def reset_agency_scope(token: Token[str | None]) -> None:
    agency_scope_var.reset(token)


def get_agency_scope() -> str | None:
    return agency_scope_var.get()
