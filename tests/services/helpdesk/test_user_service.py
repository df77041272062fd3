"""Tests for account administration and registration races."""

import asyncio

import pytest

from services.helpdesk.domain import AgentProfile, CustomerProfile, UserAccount, UserRole
from services.helpdesk.errors import DuplicateEmailError, NotFoundError, ValidationFailedError
from services.helpdesk.repositories import Repositories
from services.helpdesk.schemas import RegisterRequest, UserCreate, UserUpdate
from services.helpdesk.services import AccountService, UserService
from shared.auth import User


class BlindEmailLookup:
    """Misses existing emails on lookup, as a request racing another one would."""

    def __init__(self, inner) -> None:
        self._inner = inner

    def __getattr__(self, name: str):
        return getattr(self._inner, name)

    async def get_by_email(self, email: str) -> UserAccount | None:
        return None


def registration(email: str = "eva@example.com") -> RegisterRequest:
    return RegisterRequest(first_name="Eva", last_name="Martins", email=email, password="segredo1")


def stranger(email: str) -> UserAccount:
    return UserAccount(first_name="Gil", last_name="Reis", email=email, password_hash="x")


class TestDuplicateEmail:
    @pytest.mark.asyncio
    async def test_repository_rejects_duplicate(
        self, repos: Repositories, accounts: dict[str, UserAccount]
    ) -> None:
        with pytest.raises(DuplicateEmailError) as excinfo:
            await repos.users.add(stranger("ANA@example.com"))

        assert excinfo.value.email == "ana@example.com"

    @pytest.mark.asyncio
    async def test_deleted_account_keeps_its_email(
        self, repos: Repositories, accounts: dict[str, UserAccount]
    ) -> None:
        customer = accounts["customer"]
        customer.is_deleted = True
        await repos.users.update(customer)

        with pytest.raises(DuplicateEmailError):
            await repos.users.add(stranger(customer.email))

    @pytest.mark.asyncio
    async def test_register_race_is_a_validation_error(
        self, repos: Repositories, accounts: dict[str, UserAccount]
    ) -> None:
        service = AccountService(BlindEmailLookup(repos.users))

        with pytest.raises(ValidationFailedError) as excinfo:
            await service.register(registration("ana@example.com"))

        assert excinfo.value.details["fields"]["email"] == ["Email is already registered"]

    @pytest.mark.asyncio
    async def test_concurrent_registrations_create_one_account(self, repos: Repositories) -> None:
        service = AccountService(BlindEmailLookup(repos.users))

        results = await asyncio.gather(
            service.register(registration()),
            service.register(registration()),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ValidationFailedError) for r in results) == 1
        assert (await repos.users.get_by_email("eva@example.com")) is not None


class TestUserService:
    @pytest.fixture
    def service(self, repos: Repositories) -> UserService:
        return UserService(repos.users)

    @pytest.mark.asyncio
    async def test_create_agent_defaults(self, service: UserService, admin_user: User) -> None:
        data = UserCreate(
            first_name="Fabio",
            last_name="Nunes",
            email="fabio@helpdesk.local",
            password="agent123",
            user_type=UserRole.AGENT,
        )

        account = await service.create_user(admin_user, data)

        assert account.role == UserRole.AGENT
        assert account.profile == AgentProfile(specialization=None, level=1, is_available=True)
        assert account.password_hash != "agent123"

    @pytest.mark.asyncio
    async def test_create_customer_inactive(self, service: UserService, admin_user: User) -> None:
        data = UserCreate(
            first_name="Gil",
            last_name="Reis",
            email="gil@example.com",
            password="segredo1",
            department="RH",
            is_active=False,
        )

        account = await service.create_user(admin_user, data)

        assert account.profile == CustomerProfile(company_department="RH")
        assert account.is_active is False

    @pytest.mark.asyncio
    async def test_create_race_is_a_validation_error(
        self, repos: Repositories, admin_user: User, accounts: dict[str, UserAccount]
    ) -> None:
        service = UserService(BlindEmailLookup(repos.users))
        data = UserCreate(first_name="Ana", last_name="Outra", email="ana@example.com", password="segredo1")

        with pytest.raises(ValidationFailedError):
            await service.create_user(admin_user, data)

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(
        self, service: UserService, admin_user: User, accounts: dict[str, UserAccount]
    ) -> None:
        customer = accounts["customer"]

        updated = await service.update_user(admin_user, customer.id, UserUpdate(first_name="Ana Maria"))

        assert updated.full_name == "Ana Maria Souza"
        assert updated.email == customer.email
        assert updated.profile.company_department == "Financeiro"

    @pytest.mark.asyncio
    async def test_agent_fields_ignored_for_customer(
        self, service: UserService, admin_user: User, accounts: dict[str, UserAccount]
    ) -> None:
        customer = accounts["customer"]

        updated = await service.update_user(admin_user, customer.id, UserUpdate(level=3, specialization="Redes"))

        assert updated.role == UserRole.CUSTOMER
        assert isinstance(updated.profile, CustomerProfile)

    @pytest.mark.asyncio
    async def test_customers_only(self, service: UserService, accounts: dict[str, UserAccount]) -> None:
        customers, total = await service.list_customers()

        assert total == 2
        assert {c.role for c in customers} == {UserRole.CUSTOMER}

    @pytest.mark.asyncio
    async def test_delete_missing(self, service: UserService, admin_user: User) -> None:
        with pytest.raises(NotFoundError):
            await service.delete_user(admin_user, 999)

    @pytest.mark.asyncio
    async def test_last_admin_guard(self, service: UserService, admin_user: User) -> None:
        with pytest.raises(ValidationFailedError):
            await service.set_status(admin_user, admin_user.id, False)
        with pytest.raises(ValidationFailedError):
            await service.update_user(admin_user, admin_user.id, UserUpdate(is_active=False))
        with pytest.raises(ValidationFailedError):
            await service.delete_user(admin_user, admin_user.id)

        # Reactivating is always allowed
        account = await service.set_status(admin_user, admin_user.id, True)
        assert account.is_active is True
