from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.core.errors import InvalidAmount
from app.utils.money import ZERO, q3, to_dec
from app.utils.timezone import weeks_after

# ten years of weekly installments
MAX_TERMS = 520


@dataclass(frozen=True)
class ScheduledInstallment:
    index: int
    due_amount: Decimal
    due_date: datetime


def _too_many(reason: str) -> InvalidAmount:
    return InvalidAmount("terms_too_many", reason)


def build_schedule(balance, terms: int, start: datetime, days_per_week: int = 7) -> list[ScheduledInstallment]:
    """Split ``balance`` into ``terms`` weekly installments.

    Every share is ``q3(balance / terms)`` except the last, which takes
    whatever is left so the shares always sum back to ``balance``.
    The whole split is validated before any installment is built.
    """
    balance = to_dec(balance)
    terms = int(terms)
    if terms < 1:
        raise InvalidAmount("terms_invalid", "Loan terms must be at least 1")
    if terms > MAX_TERMS:
        raise _too_many(f"Loan terms must not exceed {MAX_TERMS}")
    try:
        weeks_after(start, terms, days_per_week)
    except OverflowError:
        raise _too_many("Last installment due date is out of range")

    if terms == 1:
        return [ScheduledInstallment(1, q3(balance), weeks_after(start, 1, days_per_week))]

    share = q3(balance / terms)
    if share == ZERO or share * (terms - 1) >= balance:
        raise _too_many("Loan amount is too small to split into that many installments")

    out = [ScheduledInstallment(i, share, weeks_after(start, i, days_per_week)) for i in range(1, terms)]
    out.append(ScheduledInstallment(terms, q3(balance - share * (terms - 1)), weeks_after(start, terms, days_per_week)))
    return out
