"""Loan state machine: create, approve/deny, pay and query.

    PENDING -> APPROVED | DENIED
    APPROVED -> IN_PROGRESS | PAID
    IN_PROGRESS -> PAID

Installments are generated once, on approval, and afterwards only mutated by
payments. Every mutation of a loan runs under a per-loan lock and is guarded
by a compare-and-set on the loan row, so two payments on the same loan can
never both apply against the same balance.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    Conflict,
    Forbidden,
    InvalidAmount,
    InvalidState,
    NotFound,
    PartialNotFound,
    Unauthorized,
)
from app.core.security import Actor, Role
from app.models.installment import Installment, InstallmentStatus
from app.models.loan import Loan, LoanStatus, PAYABLE_STATUSES
from app.services.allocator import allocate
from app.services.audit import log_event
from app.services.schedule import build_schedule
from app.services.stores import InstallmentStore, LoanStore
from app.utils.money import ZERO, q3, to_dec
from app.utils.timezone import Clock, now_utc

log = logging.getLogger(__name__)


class LoanLocks:
    """Process-wide registry of per-loan mutexes.

    An entry lives only while some caller holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._users: dict[int, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, loan_id: int) -> threading.Lock:
        with self._guard:
            self._users[loan_id] = self._users.get(loan_id, 0) + 1
            return self._locks.setdefault(loan_id, threading.Lock())

    def _checkin(self, loan_id: int) -> None:
        with self._guard:
            n = self._users[loan_id] - 1
            if n:
                self._users[loan_id] = n
            else:
                del self._users[loan_id]
                del self._locks[loan_id]

    @contextmanager
    def hold(self, *loan_ids: int) -> Iterator[None]:
        # sorted acquisition order
        ids = sorted(set(int(i) for i in loan_ids))
        locks = [self._checkout(i) for i in ids]
        acquired: list[threading.Lock] = []
        try:
            for lk in locks:
                lk.acquire()
                acquired.append(lk)
            yield
        finally:
            for lk in reversed(acquired):
                lk.release()
            for i in ids:
                self._checkin(i)


def installment_record(i: Installment) -> dict:
    return {
        "id": i.id,
        "loan_id": i.loan_id,
        "due_amount": to_dec(i.due_amount),
        "paid_amount": to_dec(i.paid_amount) if i.paid_amount is not None else None,
        "due_date": i.due_date,
        "status": i.status,
        "payment_date": i.payment_date,
    }


def loan_record(loan: Loan) -> dict:
    installments = [installment_record(i) for i in loan.installments or []]
    return {
        "id": loan.id,
        "customer_id": loan.customer_id,
        "reference_id": loan.reference_id,
        "amount": to_dec(loan.amount),
        "terms": loan.terms,
        "balance": to_dec(loan.balance),
        "status": loan.status,
        "application_date": loan.application_date,
        "decision_date": loan.decision_date,
        "installments": installments or None,
    }


def _require_role(actor: Actor | None, role: Role) -> None:
    if actor is None or actor.role != role:
        raise Unauthorized("role_not_permitted", f"Only a {role.value} may perform this operation")


class LoanLifecycle:
    def __init__(
        self,
        loans: LoanStore,
        installments: InstallmentStore,
        clock: Clock = now_utc,
        locks: LoanLocks | None = None,
        interval_days: int = 7,
    ):
        self.loans = loans
        self.installments = installments
        self.clock = clock
        self.locks = locks or LoanLocks()
        self.interval_days = interval_days

    def create(self, actor: Actor, reference_id: str, amount, terms: int) -> dict:
        _require_role(actor, Role.CUSTOMER)

        amount = q3(amount)
        if amount <= ZERO:
            raise InvalidAmount("amount_not_positive", "Loan amount must be positive")
        now = self.clock()
        # rejects term counts the amount cannot be split into
        build_schedule(amount, terms, now, self.interval_days)

        if self.loans.find_one(customer_id=actor.id, reference_id=reference_id) is not None:
            raise Conflict("loan_exists", "Loan with reference ID already exists")

        loan = Loan(
            customer_id=actor.id,
            reference_id=reference_id,
            amount=amount,
            terms=int(terms),
            balance=amount,
            status=LoanStatus.PENDING.value,
            application_date=now,
            decision_date=None,
            updated_at=now,
        )
        try:
            self.loans.insert(loan)
            log_event(
                self.loans.s,
                actor,
                action="loan.create",
                entity_type="loan",
                entity_id=loan.id,
                details={"reference_id": reference_id, "amount": str(amount), "terms": int(terms)},
            )
            self.loans.commit()
        except IntegrityError:
            self.loans.rollback()
            raise Conflict("loan_exists", "Loan with reference ID already exists")
        except Exception:
            self.loans.rollback()
            raise

        log.info("loan %s created for customer %s (%s over %s terms)", loan.id, actor.id, amount, terms)
        return loan_record(loan)

    def approve_or_deny(self, actor: Actor, loan_ids: Iterable[int], approve: bool) -> list[dict]:
        _require_role(actor, Role.ADMIN)

        ids = list(dict.fromkeys(int(i) for i in loan_ids))
        if not ids:
            raise InvalidState("loan_ids_required", "At least one loan ID is required")

        new_status = LoanStatus.APPROVED if approve else LoanStatus.DENIED
        with self.locks.hold(*ids):
            found = self.loans.find_all(id=ids, status=LoanStatus.PENDING.value)
            present = {ln.id for ln in found}
            missing = [i for i in ids if i not in present]
            if missing:
                # either unknown or already decided
                raise PartialNotFound(missing)

            now = self.clock()
            try:
                n = self.loans.update_all(
                    ids,
                    {"status": new_status.value, "decision_date": now, "updated_at": now},
                    status=LoanStatus.PENDING.value,
                )
                if n != len(ids):
                    raise Conflict("loan_modified_concurrently", "Loan was modified by another request")
                for ln in found:
                    if approve:
                        self._create_installments(ln, now)
                    log_event(
                        self.loans.s,
                        actor,
                        action="loan.approve" if approve else "loan.deny",
                        entity_type="loan",
                        entity_id=ln.id,
                    )
                self.loans.commit()
            except Exception:
                self.loans.rollback()
                raise

        log.info("loans %s marked %s by admin %s", ids, new_status.value, actor.id)
        return [loan_record(ln) for ln in self.loans.find_all(id=ids)]

    def _create_installments(self, loan: Loan, now) -> list[Installment]:
        schedule = build_schedule(loan.balance, loan.terms, now, self.interval_days)
        return self.installments.insert_all(
            {
                "loan_id": loan.id,
                "due_amount": item.due_amount,
                "paid_amount": None,
                "due_date": item.due_date,
                "status": InstallmentStatus.PENDING.value,
                "updated_at": now,
            }
            for item in schedule
        )

    def pay(self, actor: Actor, loan_id: int, amount) -> dict:
        _require_role(actor, Role.CUSTOMER)

        amount = q3(amount)
        if amount <= ZERO:
            raise InvalidAmount("amount_not_positive", "Payment amount must be positive")

        with self.locks.hold(loan_id):
            loan = self.loans.find_one(id=loan_id)
            if loan is None:
                raise NotFound("loan_not_found", "No loan found for payment")
            if loan.customer_id != actor.id:
                raise Forbidden("loan_not_owned", "Loan belongs to another customer")
            if loan.status not in PAYABLE_STATUSES:
                raise InvalidState("loan_not_payable", f"Loan in status {loan.status} cannot accept payments")

            balance = to_dec(loan.balance)
            if amount > balance:
                raise InvalidAmount("amount_exceeds_balance", "Amount more than pending balance")

            now = self.clock()
            allocation = allocate(loan.installments, amount, now)
            new_balance = balance - amount
            new_status = LoanStatus.PAID if new_balance == ZERO else LoanStatus.IN_PROGRESS

            try:
                ok = self.loans.compare_and_set(
                    loan.id,
                    balance,
                    {"balance": new_balance, "status": new_status.value, "updated_at": now},
                )
                if not ok:
                    raise Conflict("loan_modified_concurrently", "Loan was modified by another request")

                by_id = {i.id: i for i in loan.installments}
                for m in allocation.mutations:
                    self.installments.update(by_id[m.installment_id], {**m.fields(), "updated_at": now})

                log_event(
                    self.loans.s,
                    actor,
                    action="loan.pay",
                    entity_type="loan",
                    entity_id=loan.id,
                    details={
                        "amount": str(amount),
                        "balance_before": str(balance),
                        "balance_after": str(new_balance),
                        "installments": [m.installment_id for m in allocation.mutations],
                    },
                )
                self.loans.commit()
            except Exception:
                self.loans.rollback()
                raise

        log.info("loan %s paid %s, balance now %s (%s)", loan_id, amount, new_balance, new_status.value)
        return loan_record(self.loans.find_one(id=loan_id))

    def get(self, actor: Actor, loan_ids: Iterable[int] | None = None) -> list[dict]:
        criteria: dict = {}
        ids = list(loan_ids or [])
        if ids:
            criteria["id"] = ids

        if actor is not None and actor.role == Role.CUSTOMER:
            criteria["customer_id"] = actor.id
        elif actor is not None and actor.role == Role.ADMIN:
            pass
        else:
            raise Unauthorized("role_not_permitted", "Unknown user role")

        return [loan_record(ln) for ln in self.loans.find_all(**criteria)]
