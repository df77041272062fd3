"""Ticket comments with edit history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from services.helpdesk.domain.enums import MessageType
from services.helpdesk.domain.ticket import utc_now


CONTENT_MAX_LENGTH = 5000


@dataclass
class Message:
    """A comment on a ticket. Internal notes are hidden from customers."""

    ticket_id: int
    author_id: int
    content: str
    message_type: MessageType = MessageType.CUSTOMER_MESSAGE
    is_internal: bool = False
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    edited_at: datetime | None = None
    original_content: str | None = None
    is_deleted: bool = False

    @property
    def is_edited(self) -> bool:
        return self.edited_at is not None

    def edit(self, new_content: str, now: datetime | None = None) -> None:
        """Replace the content, keeping the very first version."""
        if not (self.original_content or "").strip():
            self.original_content = self.content
        moment = now or utc_now()
        self.content = new_content
        self.edited_at = moment
        self.updated_at = moment
