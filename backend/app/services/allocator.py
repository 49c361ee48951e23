"""Payment allocation across a loan's installments.

A payment first retires the earliest pending installment in full. Anything
left over is walked backwards from the latest pending installment, so a lump
payment pre-pays the tail of the schedule before the next-due slots.

The walk decrements the overflow by each visited installment's full
(rounded) due amount, even when that installment only absorbs part of it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence

from app.core.errors import InvalidAmount, InvalidState
from app.models.installment import InstallmentStatus
from app.utils.money import ZERO, q3, to_dec


class InstallmentLike(Protocol):
    id: int
    due_amount: Decimal
    status: str


@dataclass(frozen=True)
class InstallmentMutation:
    installment_id: int
    due_amount: Decimal
    paid_amount: Decimal | None
    status: str
    payment_date: datetime | None = None

    def fields(self) -> dict:
        out = {
            "due_amount": self.due_amount,
            "paid_amount": self.paid_amount,
            "status": self.status,
        }
        if self.payment_date is not None:
            out["payment_date"] = self.payment_date
        return out


@dataclass(frozen=True)
class Allocation:
    mutations: list[InstallmentMutation]
    remainder: Decimal


def pending_installments(installments: Sequence[InstallmentLike]) -> list[InstallmentLike]:
    return [i for i in installments if i.status == InstallmentStatus.PENDING]


def allocate(installments: Sequence[InstallmentLike], amount, now: datetime) -> Allocation:
    amount = to_dec(amount)
    if amount <= ZERO:
        raise InvalidAmount("amount_not_positive", "Payment amount must be positive")

    pending = pending_installments(installments)
    if not pending:
        raise InvalidState("no_pending_installment", "Loan has no pending installment")

    current = pending[0]
    current_due = to_dec(current.due_amount)
    if current_due > amount:
        raise InvalidAmount(
            "amount_below_due_installment",
            "Installment amount must not be less than the due amount",
        )

    mutations = [
        InstallmentMutation(
            installment_id=current.id,
            due_amount=current_due,
            paid_amount=amount,
            status=InstallmentStatus.PAID.value,
            payment_date=now,
        )
    ]
    overflow = amount - q3(current_due)

    j = len(pending) - 1
    while overflow > ZERO and j > 0:
        inst = pending[j]
        due = to_dec(inst.due_amount)
        new_due = max(ZERO, due - overflow)
        if new_due == ZERO:
            mutations.append(
                InstallmentMutation(
                    installment_id=inst.id,
                    due_amount=ZERO,
                    paid_amount=ZERO,
                    status=InstallmentStatus.ADVANCED.value,
                )
            )
        else:
            mutations.append(
                InstallmentMutation(
                    installment_id=inst.id,
                    due_amount=new_due,
                    paid_amount=None,
                    status=InstallmentStatus.PENDING.value,
                )
            )
        overflow -= q3(due)
        j -= 1

    return Allocation(mutations=mutations, remainder=overflow)
