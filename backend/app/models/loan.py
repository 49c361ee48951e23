from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Integer, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.models.installment import Installment


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    IN_PROGRESS = "in_progress"
    PAID = "paid"


PAYABLE_STATUSES = (LoanStatus.APPROVED.value, LoanStatus.IN_PROGRESS.value)


class Loan(Base):
    __tablename__ = "loans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    reference_id: Mapped[str] = mapped_column(String(128))

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 3))
    terms: Mapped[int] = mapped_column(Integer)
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 3))
    status: Mapped[str] = mapped_column(String(16), default=LoanStatus.PENDING.value, index=True)

    application_date: Mapped[datetime] = mapped_column(DateTime)
    decision_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    installments: Mapped[list[Installment]] = relationship(
        Installment,
        order_by=[Installment.due_date, Installment.id],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("customer_id", "reference_id", name="uq_loans_customer_reference"),
    )
