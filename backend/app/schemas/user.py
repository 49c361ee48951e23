from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Literal

Role = Literal["admin", "customer"]

class UserCreate(BaseModel):
    email: str
    name: str | None = None
    password: str
    role: Role = "customer"

    @field_validator("email")
    @classmethod
    def email_normalize(cls, v: str):
        v = v.strip().lower()
        if not v or "@" not in v:
            raise ValueError("a valid email is required")
        if len(v) > 255:
            raise ValueError("email too long")
        return v

    @field_validator("password")
    @classmethod
    def password_min(cls, v: str):
        v = str(v)
        if len(v) < 6:
            raise ValueError("password must be at least 6 characters")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def role_normalize(cls, v):
        return (v or "customer").strip().lower()

class UserOut(BaseModel):
    id: int
    email: str
    name: str | None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True
