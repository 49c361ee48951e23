from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal

from app.services.schedule import MAX_TERMS


class LoanCreate(BaseModel):
    reference_id: str = Field(min_length=3, max_length=128)
    amount: Decimal = Field(ge=1)
    terms: int = Field(ge=1, le=MAX_TERMS)

    @field_validator("reference_id")
    @classmethod
    def reference_trim(cls, v: str):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("reference_id must be at least 3 characters")
        return v

    @field_validator("amount")
    @classmethod
    def amount_must_be_finite(cls, v: Decimal):
        if not v.is_finite():
            raise ValueError("amount must be finite")
        return v


class LoanPayment(BaseModel):
    amount: Decimal = Field(ge=1)

    @field_validator("amount")
    @classmethod
    def amount_must_be_finite(cls, v: Decimal):
        if not v.is_finite():
            raise ValueError("amount must be finite")
        return v


class LoanDecision(BaseModel):
    approval: bool


class LoanBatchDecision(BaseModel):
    loan_ids: list[int] = Field(min_length=1)
    approval: bool

    @field_validator("loan_ids")
    @classmethod
    def ids_positive(cls, v: list[int]):
        if any(i < 1 for i in v):
            raise ValueError("loan ids must be positive")
        return v


class InstallmentOut(BaseModel):
    id: int
    loan_id: int
    due_amount: float
    paid_amount: float | None
    due_date: datetime
    status: str
    payment_date: datetime | None


class LoanOut(BaseModel):
    id: int
    customer_id: int
    reference_id: str
    amount: float
    terms: int
    balance: float
    status: str
    application_date: datetime
    decision_date: datetime | None
    installments: list[InstallmentOut] | None = None
