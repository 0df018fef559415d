# partilio/models/expense.py
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, ForeignKey, Boolean, Enum, Date, DateTime, Integer, Numeric, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from partilio.core.database import Base
import enum

class ExpenseType(str, enum.Enum):
    ONE_TIME = "ONE_TIME"
    FIXED_RECURRING = "FIXED_RECURRING"
    VARIABLE_RECURRING = "VARIABLE_RECURRING"
    INSTALLMENT = "INSTALLMENT"
    CREDIT_CARD = "CREDIT_CARD"

class PaymentStatus(str, enum.Enum):
    FUTURE = "FUTURE"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    PAID = "PAID"

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    description = Column(String(length=255), nullable=False)
    supplier = Column(String(length=150), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    installment_amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(ExpenseType), default=ExpenseType.ONE_TIME, nullable=False)

    start_date = Column(Date, nullable=False)
    # Day-of-month anchor for due dates; falls back to start_date.day
    due_day = Column(Integer, nullable=True)
    purchase_date = Column(Date, nullable=True)
    is_installment = Column(Boolean, default=False, nullable=False)
    number_of_installments = Column(Integer, nullable=True)
    number_of_months = Column(Integer, nullable=True)

    is_divided = Column(Boolean, default=False, nullable=False)
    payer_id = Column(PG_UUID(as_uuid=True), ForeignKey("payers.id", ondelete="SET NULL"), nullable=True)
    buyer_id = Column(PG_UUID(as_uuid=True), ForeignKey("payers.id", ondelete="RESTRICT"), nullable=False)
    category_id = Column(PG_UUID(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    credit_card_id = Column(PG_UUID(as_uuid=True), ForeignKey("credit_cards.id", ondelete="SET NULL"), nullable=True)
    notes = Column(String(length=500), nullable=True)

    # Inactive expenses are hidden; paused ones are skipped by dashboards
    active = Column(Boolean, default=True, nullable=False)
    paused = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=None, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="expenses")
    category = relationship("Category", back_populates="expenses", lazy="joined")
    credit_card = relationship("CreditCard", back_populates="expenses", lazy="joined")
    buyer = relationship("Payer", foreign_keys=[buyer_id], lazy="joined")
    payer = relationship("Payer", foreign_keys=[payer_id], lazy="joined")
    splits = relationship(
        "ExpenseSplit",
        back_populates="expense",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payments = relationship(
        "ExpensePayment",
        back_populates="expense",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="[ExpensePayment.year, ExpensePayment.month]",
    )

    @property
    def effective_payer_id(self):
        return self.payer_id or self.buyer_id

    def __repr__(self):
        return f"<Expense description={self.description} amount={self.total_amount} user_id={self.user_id}>"

class ExpenseSplit(Base):
    __tablename__ = "expense_splits"
    __table_args__ = (UniqueConstraint("expense_id", "payer_id", name="uq_expense_split_payer"),)

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    expense_id = Column(PG_UUID(as_uuid=True), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False)
    payer_id = Column(PG_UUID(as_uuid=True), ForeignKey("payers.id", ondelete="CASCADE"), nullable=False)
    percentage = Column(Numeric(7, 4), nullable=False)
    # Share of the expense's installment_amount, in cents precision
    amount = Column(Numeric(12, 2), nullable=False)

    expense = relationship("Expense", back_populates="splits")
    payer = relationship("Payer", lazy="joined")

    def __repr__(self):
        return f"<ExpenseSplit payer_id={self.payer_id} percentage={self.percentage} amount={self.amount}>"

class ExpensePayment(Base):
    __tablename__ = "expense_payments"
    __table_args__ = (UniqueConstraint("expense_id", "month", "year", name="uq_expense_payment_period"),)

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    expense_id = Column(PG_UUID(as_uuid=True), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=None, onupdate=datetime.utcnow)

    expense = relationship("Expense", back_populates="payments", lazy="joined")

    def __repr__(self):
        return f"<ExpensePayment {self.month}/{self.year} amount={self.amount} status={self.status}>"
