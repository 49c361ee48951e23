from fastapi import APIRouter, Depends, Query

from app.api.deps import lifecycle, require_admin_path
from app.core.errors import NotFound
from app.core.security import Actor
from app.schemas.loan import LoanBatchDecision, LoanDecision, LoanOut
from app.services.lifecycle import LoanLifecycle

router = APIRouter(prefix="/admins/{user_id}/loans", tags=["admins"])


@router.get("", response_model=list[LoanOut])
def list_loans(
    loan_id: list[int] | None = Query(default=None),
    lc: LoanLifecycle = Depends(lifecycle),
    u: Actor = Depends(require_admin_path),
):
    return lc.get(u, loan_id)


@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, lc: LoanLifecycle = Depends(lifecycle), u: Actor = Depends(require_admin_path)):
    rows = lc.get(u, [loan_id])
    if not rows:
        raise NotFound("loan_not_found", f"Loan {loan_id} not found")
    return rows[0]


@router.patch("", response_model=list[LoanOut])
def decide_loans(body: LoanBatchDecision, lc: LoanLifecycle = Depends(lifecycle), u: Actor = Depends(require_admin_path)):
    return lc.approve_or_deny(u, body.loan_ids, body.approval)


@router.patch("/{loan_id}", response_model=LoanOut)
def decide_loan(
    loan_id: int,
    body: LoanDecision,
    lc: LoanLifecycle = Depends(lifecycle),
    u: Actor = Depends(require_admin_path),
):
    return lc.approve_or_deny(u, [loan_id], body.approval)[0]
