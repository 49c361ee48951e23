from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.errors import InvalidAmount, InvalidState
from app.services.allocator import allocate, pending_installments

NOW = datetime(2026, 2, 1, 12, 0, 0)


@dataclass
class Slot:
    id: int
    due_amount: Decimal
    status: str = "pending"


def _slots(*dues, statuses=None):
    statuses = statuses or ["pending"] * len(dues)
    return [Slot(i + 1, Decimal(str(d)), st) for i, (d, st) in enumerate(zip(dues, statuses))]


def _by_id(allocation):
    return {m.installment_id: m for m in allocation.mutations}


def test_exact_payment_settles_only_current_installment():
    a = allocate(_slots(200, 200, 200), Decimal("200"), NOW)

    assert len(a.mutations) == 1
    m = a.mutations[0]
    assert m.installment_id == 1
    assert m.status == "paid"
    assert m.paid_amount == Decimal("200")
    assert m.due_amount == Decimal("200")
    assert m.payment_date == NOW
    assert a.remainder == Decimal("0")


def test_overflow_prepays_latest_installment_first():
    a = allocate(_slots(200, 200, 200), Decimal("500"), NOW)
    by_id = _by_id(a)

    assert by_id[1].status == "paid"
    assert by_id[1].paid_amount == Decimal("500")
    assert by_id[3].status == "advanced"
    assert by_id[3].due_amount == Decimal("0")
    assert by_id[3].paid_amount == Decimal("0")
    assert by_id[2].status == "pending"
    assert by_id[2].due_amount == Decimal("100")


def test_overflow_decrements_by_full_due_of_partially_reduced_installment():
    a = allocate(_slots(100, 100, 100, 100), Decimal("150"), NOW)
    by_id = _by_id(a)

    # 50 left over only shaves the last slot; the walk stops there
    assert by_id[4].due_amount == Decimal("50")
    assert by_id[4].status == "pending"
    assert 3 not in by_id
    assert 2 not in by_id
    assert a.remainder == Decimal("-50")


def test_walk_never_revisits_current_installment():
    a = allocate(_slots(100, 100), Decimal("200"), NOW)
    by_id = _by_id(a)

    assert set(by_id) == {1, 2}
    assert by_id[1].status == "paid"
    assert by_id[2].status == "advanced"


def test_non_pending_installments_are_skipped():
    slots = _slots(100, 100, 0, 100, statuses=["paid", "pending", "advanced", "pending"])
    a = allocate(slots, Decimal("150"), NOW)
    by_id = _by_id(a)

    assert by_id[2].status == "paid"
    assert by_id[4].due_amount == Decimal("50")
    assert 1 not in by_id
    assert 3 not in by_id


def test_payment_below_current_due_is_rejected():
    with pytest.raises(InvalidAmount) as e:
        allocate(_slots("33.333", "33.333", "33.334"), Decimal("33.332"), NOW)
    assert e.value.code == "amount_below_due_installment"


def test_no_pending_installment_is_invalid_state():
    with pytest.raises(InvalidState):
        allocate(_slots(100, statuses=["paid"]), Decimal("100"), NOW)


def test_non_positive_amount_is_rejected():
    with pytest.raises(InvalidAmount):
        allocate(_slots(100), Decimal("0"), NOW)


def test_allocate_does_not_mutate_inputs():
    slots = _slots(200, 200, 200)
    allocate(slots, Decimal("500"), NOW)
    assert [s.status for s in slots] == ["pending"] * 3
    assert [s.due_amount for s in slots] == [Decimal("200")] * 3


def test_rounded_due_amounts_drive_overflow():
    a = allocate(_slots("33.333", "33.333", "33.334"), Decimal("66.667"), NOW)
    by_id = _by_id(a)

    assert by_id[1].status == "paid"
    assert by_id[3].due_amount == Decimal("0.000")
    assert by_id[3].status == "advanced"
    assert 2 not in by_id


def test_pending_installments_preserves_order():
    slots = _slots(1, 2, 3, statuses=["pending", "paid", "pending"])
    assert [s.id for s in pending_installments(slots)] == [1, 3]
