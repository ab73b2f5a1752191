"""Pytest fixtures for testing"""

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from paylater_gateway.api.main import create_app
from paylater_gateway.infrastructure.database.models import Base
from paylater_gateway.infrastructure.database.session import get_db
from paylater_gateway.domain.models import Payment, PaymentPlan, PaymentStatus, Transaction


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def make_payment(
    number: int,
    due_date: datetime,
    amount: str = "100.00",
    status: PaymentStatus = PaymentStatus.SCHEDULED,
    transaction_id: str = "txn_1",
) -> Payment:
    return Payment(
        id=f"pay_{number}",
        transaction_id=transaction_id,
        installment_number=number,
        amount=Decimal(amount),
        due_date=due_date,
        status=status,
        payment_date=due_date if status == PaymentStatus.COMPLETED else None,
    )


@pytest.fixture
def monthly_payments() -> List[Payment]:
    """Three $100 installments due on the first of Jan, Feb and Mar 2024; the first is paid"""
    return [
        make_payment(1, datetime(2024, 1, 1), status=PaymentStatus.COMPLETED),
        make_payment(2, datetime(2024, 2, 1)),
        make_payment(3, datetime(2024, 3, 1)),
    ]


@pytest.fixture
def monthly_transaction(monthly_payments: List[Payment]) -> Transaction:
    return Transaction(
        id="txn_1",
        amount=Decimal("300.00"),
        payment_plan=PaymentPlan.PAY_IN_3,
        payments=monthly_payments,
    )
