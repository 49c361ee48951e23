from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.api.deps import db, require_admin
from app.core.security import Actor, hash_password
from app.schemas.user import UserCreate, UserOut
from app.models.user import User
from app.services.audit import log_event

router = APIRouter(prefix="/users", tags=["users"])

@router.get("", response_model=list[UserOut])
def list_users(s: Session = Depends(db), u: Actor = Depends(require_admin)):
    return s.execute(select(User).order_by(User.email.asc())).scalars().all()

@router.post("", response_model=UserOut)
def create_user(body: UserCreate, s: Session = Depends(db), u: Actor = Depends(require_admin)):
    exists = s.execute(select(User).where(User.email == body.email)).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="user_exists")
    user = User(email=body.email, name=body.name, password_hash=hash_password(body.password), role=body.role)
    s.add(user)
    s.flush()
    log_event(
        s,
        u,
        action="user.create",
        entity_type="user",
        entity_id=user.id,
        details={"email": user.email, "role": user.role},
    )
    s.commit()
    s.refresh(user)
    return user
