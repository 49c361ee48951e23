from fastapi import APIRouter, Depends, Query

from app.api.deps import lifecycle, require_customer
from app.core.errors import NotFound
from app.core.security import Actor
from app.schemas.loan import LoanCreate, LoanOut, LoanPayment
from app.services.lifecycle import LoanLifecycle

router = APIRouter(prefix="/customers/{user_id}/loans", tags=["customers"])


@router.post("", response_model=LoanOut)
def create_loan(body: LoanCreate, lc: LoanLifecycle = Depends(lifecycle), u: Actor = Depends(require_customer)):
    return lc.create(u, body.reference_id, body.amount, body.terms)


@router.get("", response_model=list[LoanOut])
def list_loans(
    loan_id: list[int] | None = Query(default=None),
    lc: LoanLifecycle = Depends(lifecycle),
    u: Actor = Depends(require_customer),
):
    return lc.get(u, loan_id)


@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, lc: LoanLifecycle = Depends(lifecycle), u: Actor = Depends(require_customer)):
    rows = lc.get(u, [loan_id])
    if not rows:
        raise NotFound("loan_not_found", f"Loan {loan_id} not found")
    return rows[0]


@router.patch("/{loan_id}", response_model=LoanOut)
def pay_loan(
    loan_id: int,
    body: LoanPayment,
    lc: LoanLifecycle = Depends(lifecycle),
    u: Actor = Depends(require_customer),
):
    return lc.pay(u, loan_id, body.amount)
