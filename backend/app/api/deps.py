from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.db.session import SessionLocal
from app.core.config import settings
from app.core.security import Actor, Role, verify_password
from app.models.user import User
from app.services.lifecycle import LoanLifecycle, LoanLocks
from app.services.stores import InstallmentStore, LoanStore

basic = HTTPBasic(auto_error=False)

loan_locks = LoanLocks()

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Basic"}

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def lifecycle(s: Session = Depends(db)) -> LoanLifecycle:
    return LoanLifecycle(
        LoanStore(s),
        InstallmentStore(s),
        locks=loan_locks,
        interval_days=settings.installment_interval_days,
    )

def current_user(creds: HTTPBasicCredentials | None = Depends(basic), s: Session = Depends(db)) -> Actor:
    if creds is None or not creds.username or not creds.password:
        raise HTTPException(status_code=401, detail="invalid_credentials", headers=_UNAUTHORIZED_HEADERS)
    u = s.execute(select(User).where(User.email == creds.username.strip().lower())).scalar_one_or_none()
    if u is None or not verify_password(creds.password, u.password_hash):
        raise HTTPException(status_code=401, detail="invalid_credentials", headers=_UNAUTHORIZED_HEADERS)
    try:
        role = Role((u.role or "").lower())
    except ValueError:
        raise HTTPException(status_code=403, detail="unknown_role")
    return Actor(id=u.id, role=role)

def _require(role: Role):
    def dep(user_id: int, u: Actor = Depends(current_user)) -> Actor:
        if u.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{role.value}_only")
        if u.id != user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user_mismatch")
        return u
    return dep

require_customer = _require(Role.CUSTOMER)
require_admin_path = _require(Role.ADMIN)

def require_admin(u: Actor = Depends(current_user)) -> Actor:
    if u.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="admin_only")
    return u
