"""
Test configuration and fixtures.

Provides:
- Database session with savepoint (rollback after each test)
- Accounts, users and memberships for each role
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
- A fake AI provider so no test talks to a real model
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import AsyncGenerator, Generator

import anyio
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from fieldops.core.deps import COOKIE_NAME, get_db
from fieldops.core.security import create_session_token
from fieldops.db.base import Base
from fieldops.db.enums import Role
from fieldops.db.models import (
    Account,
    AccountMembership,
    AccountSettings,
    Customer,
    Estimate,
    Invoice,
    Job,
    Lead,
    User,
    Visit,
)
from fieldops.db.session import SessionLocal, engine
from fieldops.main import app
from fieldops.routers.internal import get_content_generator
from fieldops.services.ai_provider import AIProvider, ChatMessage, ChatResponse
from fieldops.services.automation_content import AutomationContentGenerator

ALL_AUTOMATIONS_ON = {
    "estimate_followups": True,
    "invoice_followups": True,
    "job_closeout": True,
    "review_requests": True,
    "lead_response": True,
}


def pytest_collection_modifyitems(config, items):
    """Tests marked postgres need real concurrent connections; skip them on SQLite."""
    if engine.dialect.name == "postgresql":
        return
    skip = pytest.mark.skip(reason="needs DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Generator[None, None, None]:
    """Create all tables once per test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="session")
def db_engine():
    return engine


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    App code can call commit()/rollback(); each session transaction is a
    SAVEPOINT inside the outer transaction, which is rolled back at the end.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Entity factories
# =============================================================================

def make_account(db: Session, name: str = "Test Account", automations: dict | None = None) -> Account:
    account = Account(
        id=uuid.uuid4(),
        name=name,
        slug=f"test-account-{uuid.uuid4().hex[:8]}",
    )
    db.add(account)
    db.flush()
    db.add(AccountSettings(account_id=account.id, ai_automation=dict(automations or {})))
    db.flush()
    return account


def make_user(
    db: Session,
    account: Account | None,
    role: Role = Role.OWNER,
    created_at: datetime | None = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"user-{uuid.uuid4().hex[:8]}@test.com",
        full_name="Test User",
    )
    db.add(user)
    db.flush()
    if account is not None:
        membership = AccountMembership(
            user_id=user.id,
            account_id=account.id,
            role=role.value,
        )
        if created_at:
            membership.created_at = created_at
        db.add(membership)
        db.flush()
    return user


def make_customer(db: Session, account: Account, **kwargs) -> Customer:
    values = {"first_name": "Jamie", "last_name": "Rivera", "email": "jamie@example.com"}
    values.update(kwargs)
    customer = Customer(account_id=account.id, **values)
    db.add(customer)
    db.flush()
    return customer


def make_job(db: Session, account: Account, **kwargs) -> Job:
    values = {
        "job_number": f"J-{uuid.uuid4().hex[:6]}",
        "title": "Replace water heater",
        "status": "scheduled",
    }
    values.update(kwargs)
    job = Job(account_id=account.id, **values)
    db.add(job)
    db.flush()
    return job


def make_visit(db: Session, account: Account, job: Job, **kwargs) -> Visit:
    visit = Visit(account_id=account.id, job_id=job.id, **kwargs)
    db.add(visit)
    db.flush()
    return visit


def make_estimate(db: Session, account: Account, **kwargs) -> Estimate:
    values = {
        "estimate_number": f"E-{uuid.uuid4().hex[:6]}",
        "title": "Furnace tune-up",
        "status": "sent",
        "sent_date": datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc),
    }
    values.update(kwargs)
    estimate = Estimate(account_id=account.id, **values)
    db.add(estimate)
    db.flush()
    return estimate


def make_invoice(db: Session, account: Account, **kwargs) -> Invoice:
    values = {
        "invoice_number": f"INV-{uuid.uuid4().hex[:6]}",
        "status": "sent",
        "issue_date": date(2026, 3, 1),
        "due_date": date(2026, 3, 15),
    }
    values.update(kwargs)
    invoice = Invoice(account_id=account.id, **values)
    db.add(invoice)
    db.flush()
    return invoice


def make_lead(db: Session, account: Account, **kwargs) -> Lead:
    values = {
        "first_name": "Casey",
        "last_name": "Nguyen",
        "service_type": "plumbing",
        "priority": "high",
        "status": "new",
    }
    values.update(kwargs)
    lead = Lead(account_id=account.id, **values)
    db.add(lead)
    db.flush()
    return lead


@dataclass
class Factory:
    """Entity factories bound to the test session."""
    db: Session

    def account(self, **kwargs) -> Account:
        return make_account(self.db, **kwargs)

    def user(self, account: Account | None, role: Role = Role.OWNER, **kwargs) -> User:
        return make_user(self.db, account, role, **kwargs)

    def customer(self, account: Account, **kwargs) -> Customer:
        return make_customer(self.db, account, **kwargs)

    def job(self, account: Account, **kwargs) -> Job:
        return make_job(self.db, account, **kwargs)

    def visit(self, account: Account, job: Job, **kwargs) -> Visit:
        return make_visit(self.db, account, job, **kwargs)

    def estimate(self, account: Account, **kwargs) -> Estimate:
        return make_estimate(self.db, account, **kwargs)

    def invoice(self, account: Account, **kwargs) -> Invoice:
        return make_invoice(self.db, account, **kwargs)

    def lead(self, account: Account, **kwargs) -> Lead:
        return make_lead(self.db, account, **kwargs)


@pytest.fixture(scope="function")
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture(scope="function")
def test_account(db: Session) -> Account:
    """Account with every automation toggle enabled."""
    return make_account(db, automations=ALL_AUTOMATIONS_ON)


@pytest.fixture(scope="function")
def other_account(db: Session) -> Account:
    return make_account(db, name="Other Account", automations=ALL_AUTOMATIONS_ON)


@pytest.fixture(scope="function")
def test_user(db: Session, test_account: Account) -> User:
    """Owner of test_account."""
    return make_user(db, test_account, Role.OWNER)


@pytest.fixture(scope="function")
def tech_user(db: Session, test_account: Account) -> User:
    return make_user(db, test_account, Role.TECH)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    account: Account
    token: str
    cookie_name: str = COOKIE_NAME


def make_auth(user: User, account: Account) -> TestAuth:
    token = create_session_token(user_id=user.id, token_version=user.token_version)
    return TestAuth(user=user, account=account, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_account: Account) -> TestAuth:
    """Create JWT token for the account owner."""
    return make_auth(test_user, test_account)


@pytest.fixture(scope="function")
def tech_auth(tech_user: User, test_account: Account) -> TestAuth:
    return make_auth(tech_user, test_account)


# =============================================================================
# AI Fixtures
# =============================================================================

@dataclass
class FakeAIProvider(AIProvider):
    """Records prompts and returns canned text."""
    reply: str = "Thanks for choosing us! Let us know if you have any questions."
    error: Exception | None = None
    delay: float = 0.0
    prompts: list[str] = field(default_factory=list)

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        if self.delay:
            await anyio.sleep(self.delay)
        self.prompts.append(messages[-1].content)
        if self.error:
            raise self.error
        return ChatResponse(
            content=self.reply,
            model=model or "fake-model",
            total_tokens=30,
        )


@pytest.fixture(scope="function")
def fake_provider() -> FakeAIProvider:
    return FakeAIProvider()


@pytest.fixture(scope="function")
def generator(fake_provider: FakeAIProvider) -> AutomationContentGenerator:
    return AutomationContentGenerator(provider=fake_provider)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session, generator: AutomationContentGenerator) -> None:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_generator] = lambda: generator


@pytest.fixture(scope="function")
async def client(
    db: Session, generator: AutomationContentGenerator
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public/internal endpoints.
    """
    _override_db(db, generator)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


async def _authed_client(db, generator, auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    _override_db(db, generator)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session, generator: AutomationContentGenerator, test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated AsyncClient for the account owner, with CSRF header."""
    async for c in _authed_client(db, generator, test_auth):
        yield c


@pytest.fixture(scope="function")
async def tech_client(
    db: Session, generator: AutomationContentGenerator, tech_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated AsyncClient for a technician."""
    async for c in _authed_client(db, generator, tech_auth):
        yield c
