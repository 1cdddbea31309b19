"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal
import uuid

from treasury.database import Base
from treasury.dependencies import get_db
from treasury.main import app
from treasury.models.account import Account, AccountType
from treasury.models.category import Category
from treasury.models.organization import Organization, User
from treasury.models.vendor import Vendor
from treasury.schemas.transaction import TransactionCreate
from treasury.services import transaction_service


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def organization(db_session):
    org = Organization(id=str(uuid.uuid4()), name="Riverside Food Bank")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def other_organization(db_session):
    org = Organization(id=str(uuid.uuid4()), name="Hillside Shelter")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def user(db_session):
    """The treasurer performing most edits."""
    u = User(id=str(uuid.uuid4()), email="treasurer@example.org", name="Tess Treasurer")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def other_user(db_session):
    u = User(id=str(uuid.uuid4()), email="bookkeeper@example.org", name="Bo Keeper")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def checking_account(db_session, organization):
    """Checking account with a 1000.00 opening balance and a 2.50 fee."""
    account = Account(
        id=str(uuid.uuid4()),
        organization_id=organization.id,
        name="Operating Checking",
        account_type=AccountType.CHECKING,
        balance=Decimal("1000.00"),
        transaction_fee=Decimal("2.50"),
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def savings_account(db_session, organization):
    """Savings account with a 500.00 opening balance."""
    account = Account(
        id=str(uuid.uuid4()),
        organization_id=organization.id,
        name="Reserve Savings",
        account_type=AccountType.SAVINGS,
        balance=Decimal("500.00"),
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def sample_category(db_session, organization):
    category = Category(
        id=str(uuid.uuid4()),
        organization_id=organization.id,
        name="Programs",
        depth=0,
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def sample_vendor(db_session, organization):
    vendor = Vendor(id=str(uuid.uuid4()), organization_id=organization.id, name="City Grocers")
    db_session.add(vendor)
    db_session.commit()
    db_session.refresh(vendor)
    return vendor


@pytest.fixture
def make_transaction(db_session, organization, checking_account, user):
    """Factory creating transactions on the checking account through the service."""
    def _make(amount="100.00", transaction_type="EXPENSE", splits=None, account=None, **kwargs):
        amount = Decimal(amount)
        data = TransactionCreate(
            amount=amount,
            transaction_type=transaction_type,
            splits=splits or [{"amount": amount, "category_name": "General"}],
            **kwargs,
        )
        return transaction_service.create_transaction(
            db_session,
            organization.id,
            (account or checking_account).id,
            data,
            user.id,
        )
    return _make


@pytest.fixture
def read_balance(db_session):
    """Current balance of an account as stored in the database."""
    def _read(account):
        db_session.expire(account, ["balance"])
        return Decimal(account.balance)
    return _read
