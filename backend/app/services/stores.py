"""SQLAlchemy-backed loan and installment stores.

Stores only flush; committing is left to whoever owns the unit of work.
Criteria are passed as keyword arguments naming model columns. A list,
tuple or set value matches any of its members.
"""
from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import ConfigurationError
from app.models.installment import Installment
from app.models.loan import Loan


class _SqlStore:
    model: Any = None

    def __init__(self, s: Session):
        self.s = s

    def _where(self, criteria: dict) -> list:
        clauses = []
        for key, value in criteria.items():
            col = getattr(self.model, key, None)
            if col is None:
                raise ConfigurationError(f"{self.model.__name__} has no field {key!r}")
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return clauses

    def commit(self) -> None:
        self.s.commit()

    def rollback(self) -> None:
        self.s.rollback()


class LoanStore(_SqlStore):
    model = Loan

    def find_one(self, **criteria) -> Loan | None:
        q = select(Loan).where(*self._where(criteria)).order_by(Loan.id.asc()).limit(1)
        return self.s.execute(q).scalars().first()

    def find_all(self, **criteria) -> list[Loan]:
        q = select(Loan).where(*self._where(criteria)).order_by(Loan.id.asc())
        return list(self.s.execute(q).scalars().all())

    def insert(self, loan: Loan) -> Loan:
        self.s.add(loan)
        self.s.flush()
        return loan

    def update_all(self, ids: Iterable[int], fields: dict, **expected) -> int:
        """Update every loan in ``ids`` that also matches ``expected``; returns the row count."""
        q = (
            update(Loan)
            .where(Loan.id.in_(list(ids)), *self._where(expected))
            .values(**fields)
            .execution_options(synchronize_session="evaluate")
        )
        return self.s.execute(q).rowcount

    def compare_and_set(self, loan_id: int, expected_balance, fields: dict) -> bool:
        return self.update_all([loan_id], fields, balance=expected_balance) == 1


class InstallmentStore(_SqlStore):
    model = Installment

    def find_all(self, **criteria) -> list[Installment]:
        q = (
            select(Installment)
            .where(*self._where(criteria))
            .order_by(Installment.due_date.asc(), Installment.id.asc())
        )
        return list(self.s.execute(q).scalars().all())

    def insert_all(self, records: Iterable[dict]) -> list[Installment]:
        rows = [Installment(**r) for r in records]
        self.s.add_all(rows)
        self.s.flush()
        return rows

    def update(self, installment: Installment, fields: dict) -> Installment:
        for key, value in fields.items():
            if not hasattr(Installment, key):
                raise ConfigurationError(f"Installment has no field {key!r}")
            setattr(installment, key, value)
        self.s.flush()
        return installment
