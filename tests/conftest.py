"""
Test Configuration
==================

Pytest fixtures for helpdesk tests.

Every test gets a fresh in-memory store seeded with the default departments
(Financeiro=1, RH=2, Produção=3, T.I=4) and the admin account (id 1).
The ``accounts`` fixture adds two agents and two customers so the main
customer has id 5.
"""

import os
from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before settings are loaded
os.environ["ENVIRONMENT"] = "testing"
os.environ["HELPDESK_STORAGE"] = "memory"
os.environ["HELPDESK_SEED_DEMO_DATA"] = "true"
os.environ["GEMINI_API_KEY"] = ""

from services.helpdesk.dependencies import get_store, reset_store  # noqa: E402
from services.helpdesk.domain import AgentProfile, CustomerProfile, UserAccount  # noqa: E402
from services.helpdesk.repositories import InMemoryStore, Repositories  # noqa: E402
from shared.auth import User, create_access_token, hash_password  # noqa: E402
from shared.config import settings  # noqa: E402
from shared.llm import reset_llm_provider  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_state() -> Iterator[None]:
    """Isolate the module-level store and LLM provider between tests."""
    reset_store()
    reset_llm_provider()
    yield
    reset_store()
    reset_llm_provider()


@pytest_asyncio.fixture
async def store() -> InMemoryStore:
    """The store the API uses, seeded with demo data."""
    return await get_store()


@pytest.fixture
def repos(store: InMemoryStore) -> Repositories:
    return store.repositories()


@pytest_asyncio.fixture
async def accounts(repos: Repositories) -> dict[str, UserAccount]:
    """Admin (1), agents (2, 3) and customers (4, 5)."""
    admin = await repos.users.get_by_email(settings.helpdesk.demo_admin_email)
    assert admin is not None

    agent = await repos.users.add(
        UserAccount(
            first_name="Bruno",
            last_name="Lima",
            email="bruno@helpdesk.local",
            password_hash=hash_password("agent123"),
            profile=AgentProfile(specialization="Infraestrutura", level=2),
        )
    )
    second_agent = await repos.users.add(
        UserAccount(
            first_name="Carla",
            last_name="Dias",
            email="carla@helpdesk.local",
            password_hash=hash_password("agent123"),
            profile=AgentProfile(specialization="Sistemas"),
        )
    )
    other_customer = await repos.users.add(
        UserAccount(
            first_name="Diego",
            last_name="Rocha",
            email="diego@example.com",
            password_hash=hash_password("customer123"),
            profile=CustomerProfile(company_department="Compras"),
        )
    )
    customer = await repos.users.add(
        UserAccount(
            first_name="Ana",
            last_name="Souza",
            email="ana@example.com",
            password_hash=hash_password("customer123"),
            profile=CustomerProfile(company_department="Financeiro"),
        )
    )
    return {
        "admin": admin,
        "agent": agent,
        "second_agent": second_agent,
        "other_customer": other_customer,
        "customer": customer,
    }


def _caller(account: UserAccount) -> User:
    return User(
        id=account.id,
        email=account.email,
        name=account.full_name,
        roles=[account.role.value],
    )


def _headers(account: UserAccount) -> dict[str, str]:
    token = create_access_token(
        {
            "sub": str(account.id),
            "roles": [account.role.value],
            "email": account.email,
            "name": account.full_name,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(accounts: dict[str, UserAccount]) -> User:
    return _caller(accounts["admin"])


@pytest.fixture
def agent_user(accounts: dict[str, UserAccount]) -> User:
    return _caller(accounts["agent"])


@pytest.fixture
def customer_user(accounts: dict[str, UserAccount]) -> User:
    return _caller(accounts["customer"])


@pytest.fixture
def other_customer_user(accounts: dict[str, UserAccount]) -> User:
    return _caller(accounts["other_customer"])


@pytest.fixture
def admin_headers(accounts: dict[str, UserAccount]) -> dict[str, str]:
    return _headers(accounts["admin"])


@pytest.fixture
def agent_headers(accounts: dict[str, UserAccount]) -> dict[str, str]:
    return _headers(accounts["agent"])


@pytest.fixture
def customer_headers(accounts: dict[str, UserAccount]) -> dict[str, str]:
    return _headers(accounts["customer"])


@pytest.fixture
def other_customer_headers(accounts: dict[str, UserAccount]) -> dict[str, str]:
    return _headers(accounts["other_customer"])


@pytest_asyncio.fixture
async def client(store: InMemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the helpdesk service."""
    from services.helpdesk.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
