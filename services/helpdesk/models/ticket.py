"""
Ticket Database Models
======================

SQLAlchemy ORM models for tickets and their messages.

Version: 0.1.0
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from shared.database.postgres import Base


class TicketModel(Base):
    """
    SQLAlchemy model for support tickets.

    ``number`` is unique so concurrent creations cannot share one, and
    ``version`` backs optimistic concurrency on updates.
    """

    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_customer", "customer_id"),
        Index("ix_tickets_department", "department_id"),
        Index("ix_tickets_created", "created_at"),
        CheckConstraint(
            "customer_rating IS NULL OR (customer_rating >= 1 AND customer_rating <= 5)",
            name="check_customer_rating",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(32), nullable=False, unique=True)

    subject = Column(String(200), nullable=False)
    description = Column(String(2000), nullable=False)
    status = Column(String(32), nullable=False, default="Open")
    priority = Column(String(16), nullable=False, default="Normal")

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_agent_id = Column(Integer, ForeignKey("users.id"))
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)

    # Lifecycle timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True))
    first_response_at = Column(DateTime(timezone=True))
    resolved_at = Column(DateTime(timezone=True))
    closed_at = Column(DateTime(timezone=True))

    sla_hours = Column(Integer)
    customer_rating = Column(Integer)
    customer_feedback = Column(String(500))

    is_deleted = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, number='{self.number}', status='{self.status}')>"


class MessageModel(Base):
    """SQLAlchemy model for ticket comments."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_ticket", "ticket_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    content = Column(Text, nullable=False)
    message_type = Column(Integer, nullable=False, default=1)
    is_internal = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True))
    edited_at = Column(DateTime(timezone=True))
    original_content = Column(Text)

    is_deleted = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, ticket_id={self.ticket_id})>"
