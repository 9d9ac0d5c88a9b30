from __future__ import annotations

import uuid


class ContactLookupError(Exception):
    """Base error for contact reads that cannot be answered."""


class ContactNotFoundError(ContactLookupError):
    """Raised when a contact does not exist within the caller's agency.

    A contact owned by another agency is reported the same way, so callers cannot
    probe for ids across tenants.
    """

    def __init__(self, contact_id: uuid.UUID) -> None:
        self.contact_id = contact_id
        super().__init__("contact not found")


class InvalidCursorError(ContactLookupError):
    def __init__(self, cursor: str) -> None:
        self.cursor = cursor
        super().__init__(f"Invalid cursor: {cursor!r}")


class InvalidStageFilterError(ContactLookupError):
    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Stage {stage!r} is never resolved for contact lists")
