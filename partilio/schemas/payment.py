# partilio/schemas/payment.py
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
import uuid

from partilio.models.expense import PaymentStatus

class PaymentExpenseRef(BaseModel):
    id: uuid.UUID
    description: str
    supplier: Optional[str] = None

    class Config:
        from_attributes = True

class PaymentRead(BaseModel):
    id: uuid.UUID
    expense_id: uuid.UUID
    month: int
    year: int
    amount: Decimal
    due_date: date
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    expense: Optional[PaymentExpenseRef] = None

    class Config:
        from_attributes = True

class MarkAsPaid(BaseModel):
    expense_id: uuid.UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    paid_at: Optional[datetime] = None

class BulkMarkAsPaid(BaseModel):
    payments: List[MarkAsPaid] = Field(..., min_length=1)

class BulkMarkResult(BaseModel):
    updated_count: int
    payments: List[PaymentRead]

class DueDateUpdate(BaseModel):
    due_date: date

class StatusTotals(BaseModel):
    count: int = 0
    amount: Decimal = Decimal("0.00")

class PaymentStats(BaseModel):
    month: int
    year: int
    paid: StatusTotals
    pending: StatusTotals
    overdue: StatusTotals
    future: StatusTotals
    total: StatusTotals
    completion_rate: float

class StatusRefreshResult(BaseModel):
    updated_count: int
