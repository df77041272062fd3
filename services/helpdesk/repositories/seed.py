"""Demo data: the default departments and an administrator account."""

from __future__ import annotations

from services.helpdesk.domain import DEFAULT_DEPARTMENTS, AdminProfile, Department, UserAccount
from services.helpdesk.repositories.base import Repositories
from shared.auth import hash_password
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


async def seed_demo_data(repos: Repositories) -> None:
    """Insert departments and an admin when none exist. Safe to call repeatedly."""
    if not await repos.departments.list_all():
        for name, description, color in DEFAULT_DEPARTMENTS:
            await repos.departments.add(Department(name=name, description=description, color=color))
        logger.info("departments_seeded", count=len(DEFAULT_DEPARTMENTS))

    if not await repos.users.has_admin():
        email = settings.helpdesk.demo_admin_email
        await repos.users.add(
            UserAccount(
                first_name="Administrador",
                last_name="Sistema",
                email=email,
                password_hash=hash_password(settings.helpdesk.demo_admin_password.get_secret_value()),
                profile=AdminProfile(),
            )
        )
        logger.info("admin_seeded", email=email)
