"""
Helpdesk Dependencies
=====================

FastAPI dependencies wiring repositories and application services.

The in-memory store is created and seeded on first use, so the API works
without the lifespan having run (as under ``httpx.ASGITransport``). With
``HELPDESK_STORAGE=sql`` each request gets its own session, committed on
success and rolled back on error.

Version: 0.1.0
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from services.helpdesk.repositories import (
    InMemoryStore,
    Repositories,
    seed_demo_data,
    sql_repositories,
)
from services.helpdesk.services import (
    AccountService,
    AdvisoryService,
    ReportService,
    TicketService,
    UserService,
)
from shared.config import StorageBackend, settings
from shared.database import db_session
from shared.llm import get_llm_provider
from shared.logging import get_logger


logger = get_logger(__name__)

_store: InMemoryStore | None = None
_store_lock = asyncio.Lock()


async def get_store() -> InMemoryStore:
    """Return the process-wide in-memory store, seeding it on first use."""
    global _store
    async with _store_lock:
        if _store is None:
            store = InMemoryStore()
            if settings.helpdesk.seed_demo_data:
                await seed_demo_data(store.repositories())
            _store = store
            logger.info("memory_store_initialized", seeded=settings.helpdesk.seed_demo_data)
    return _store


def reset_store() -> None:
    """Drop the in-memory store; the next request builds a fresh one."""
    global _store, _store_lock
    _store = None
    _store_lock = asyncio.Lock()


async def get_repositories() -> AsyncGenerator[Repositories, None]:
    if settings.helpdesk.storage == StorageBackend.SQL:
        async with db_session() as session:
            yield sql_repositories(session)
        return

    store = await get_store()
    yield store.repositories()


RepositoriesDep = Annotated[Repositories, Depends(get_repositories)]


def get_ticket_service(repos: RepositoriesDep) -> TicketService:
    return TicketService(repos)


def get_account_service(repos: RepositoriesDep) -> AccountService:
    return AccountService(repos.users)


def get_user_service(repos: RepositoriesDep) -> UserService:
    return UserService(repos.users)


def get_report_service(repos: RepositoriesDep) -> ReportService:
    return ReportService(repos)


def get_advisory_service(repos: RepositoriesDep) -> AdvisoryService:
    return AdvisoryService(repos.departments, provider=get_llm_provider())
