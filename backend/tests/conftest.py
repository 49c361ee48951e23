from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import Actor, Role
from app.db.base import Base
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.installment import Installment  # noqa: F401
from app.models.loan import Loan  # noqa: F401
from app.models.user import User
from app.services.lifecycle import LoanLifecycle
from app.services.stores import InstallmentStore, LoanStore

START = datetime(2026, 1, 5, 9, 0, 0)


class FixedClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> None:
        self.now = self.now + timedelta(**kw)


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def clock():
    return FixedClock()


@pytest.fixture()
def lifecycle(session, clock):
    return LoanLifecycle(LoanStore(session), InstallmentStore(session), clock=clock)


def mk_user(session, role: str = "customer", password_hash: str = "x") -> User:
    u = User(email=f"{role}-{uuid4().hex[:10]}@example.com", password_hash=password_hash, role=role)
    session.add(u)
    session.commit()
    return u


@pytest.fixture()
def customer(session) -> Actor:
    return Actor(id=mk_user(session, "customer").id, role=Role.CUSTOMER)


@pytest.fixture()
def other_customer(session) -> Actor:
    return Actor(id=mk_user(session, "customer").id, role=Role.CUSTOMER)


@pytest.fixture()
def admin(session) -> Actor:
    return Actor(id=mk_user(session, "admin").id, role=Role.ADMIN)
