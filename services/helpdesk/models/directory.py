"""
Directory Database Models
=========================

SQLAlchemy ORM models for departments and user accounts.

Users live in one table; ``role`` says which of the role columns apply.

Version: 0.1.0
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
)

from shared.database.postgres import Base


class DepartmentModel(Base):
    """SQLAlchemy model for routing departments."""

    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True)
    color = Column(String(7))
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name='{self.name}')>"


class UserModel(Base):
    """SQLAlchemy model for customer, agent and admin accounts."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role", "role"),
        CheckConstraint("agent_level IS NULL OR (agent_level >= 1 AND agent_level <= 5)", name="check_agent_level"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role = Column(String(16), nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Customer
    company_department = Column(String(50))
    total_tickets = Column(Integer, nullable=False, default=0)
    last_ticket_at = Column(DateTime(timezone=True))

    # Agent
    specialization = Column(String(100))
    agent_level = Column(Integer)
    is_available = Column(Boolean)

    # Admin
    can_manage_users = Column(Boolean)
    can_manage_system = Column(Boolean)
    can_view_reports = Column(Boolean)
    can_manage_departments = Column(Boolean)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
