import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEND_EMAILS", "false")
os.environ.setdefault("BASE_CURRENCY", "ILS")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.database import Base, get_db
from app.main import app
from app.models.expense import ExpenseCategory
from app.schemas.expense import ExpenseCreate
from app.schemas.report import ReportCreate
from app.services import report_approval

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EMPLOYEE_ID = 10
MANAGER_ID = 20
ACCOUNTING_ID = 30


class RecordingDispatcher:
    """Collects events instead of storing or emailing them."""

    def __init__(self):
        self.events = []

    def dispatch(self, db, event):
        self.events.append(event)
        return True

    def kinds(self):
        return [e.kind.value for e in self.events]


class FailingDispatcher:
    def dispatch(self, db, event):
        raise ConnectionError("smtp down")


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id, role="employee"):
    token = create_access_token(subject=user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


def make_expense(day=1, category=ExpenseCategory.FOOD, amount="100", currency="ILS", description="lunch"):
    return ExpenseCreate(
        expense_date=date(2026, 3, day),
        category=category,
        description=description,
        amount=Decimal(amount),
        currency=currency,
    )


@pytest.fixture
def open_report(db):
    """An open report owned by EMPLOYEE_ID with three lines."""
    report = report_approval.create_report(
        db,
        user_id=EMPLOYEE_ID,
        data=ReportCreate(
            trip_destination="Berlin",
            trip_purpose="Conference",
            trip_start_date=date(2026, 3, 1),
            trip_end_date=date(2026, 3, 4),
        ),
    )
    report_approval.open_report(db, report_id=report.id, user_id=EMPLOYEE_ID)
    report_approval.add_expense(
        db, report_id=report.id, user_id=EMPLOYEE_ID,
        data=make_expense(1, ExpenseCategory.FLIGHTS, "300", "EUR", "flight to Berlin"),
    )
    report_approval.add_expense(
        db, report_id=report.id, user_id=EMPLOYEE_ID,
        data=make_expense(2, ExpenseCategory.ACCOMMODATION, "450", "EUR", "hotel"),
    )
    report_approval.add_expense(
        db, report_id=report.id, user_id=EMPLOYEE_ID,
        data=make_expense(2, ExpenseCategory.FOOD, "120", "ILS", "dinner"),
    )
    db.refresh(report)
    return report
