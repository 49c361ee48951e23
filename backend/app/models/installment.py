from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Integer, DateTime, func, ForeignKey, Numeric, String, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    ADVANCED = "advanced"
    LATE = "late"


class Installment(Base):
    __tablename__ = "installments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    loan_id: Mapped[int] = mapped_column(ForeignKey("loans.id", ondelete="CASCADE"), index=True)

    due_amount: Mapped[Decimal] = mapped_column(Numeric(14, 3))
    paid_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 3), nullable=True)
    due_date: Mapped[datetime] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(16), default=InstallmentStatus.PENDING.value)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


Index("ix_installments_loan_due", Installment.loan_id, Installment.due_date)
