# partilio/schemas/expense.py
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
import uuid

from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.schemas.category import CategoryRef
from partilio.schemas.credit_card import CreditCardRef
from partilio.schemas.payer import PayerRef

class SplitIn(BaseModel):
    payer_id: uuid.UUID
    percentage: Decimal = Field(..., description="Share of the expense, e.g. 33.34")

class SplitRead(BaseModel):
    payer_id: uuid.UUID
    percentage: Decimal
    amount: Decimal
    payer: Optional[PayerRef] = None

    class Config:
        from_attributes = True

class ScheduledPaymentRead(BaseModel):
    id: uuid.UUID
    month: int
    year: int
    amount: Decimal
    due_date: date
    status: PaymentStatus
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ExpenseBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=255, description="E.g. Supermarket, Rent, Netflix")
    supplier: Optional[str] = Field(None, max_length=150)
    total_amount: Decimal = Field(..., description="Full amount of the expense")
    installment_amount: Optional[Decimal] = Field(
        None, description="Amount of each monthly payment; derived from total_amount when omitted"
    )
    type: ExpenseType = ExpenseType.ONE_TIME
    start_date: date
    due_day: Optional[int] = Field(None, description="Day-of-month the payments fall due (1-31)")
    purchase_date: Optional[date] = None
    is_installment: bool = False
    number_of_installments: Optional[int] = None
    number_of_months: Optional[int] = Field(None, description="How many months a recurring expense is scheduled for")
    is_divided: bool = False
    payer_id: Optional[uuid.UUID] = None
    buyer_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    credit_card_id: Optional[uuid.UUID] = None
    notes: Optional[str] = Field(None, max_length=500)

class ExpenseCreate(ExpenseBase):
    splits: List[SplitIn] = Field(default_factory=list)

class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    supplier: Optional[str] = Field(None, max_length=150)
    total_amount: Optional[Decimal] = None
    installment_amount: Optional[Decimal] = None
    type: Optional[ExpenseType] = None
    start_date: Optional[date] = None
    due_day: Optional[int] = None
    purchase_date: Optional[date] = None
    is_installment: Optional[bool] = None
    number_of_installments: Optional[int] = None
    number_of_months: Optional[int] = None
    is_divided: Optional[bool] = None
    payer_id: Optional[uuid.UUID] = None
    buyer_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    credit_card_id: Optional[uuid.UUID] = None
    notes: Optional[str] = Field(None, max_length=500)
    splits: Optional[List[SplitIn]] = None

class ExpenseRead(ExpenseBase):
    id: uuid.UUID
    installment_amount: Decimal
    active: bool
    paused: bool
    created_at: Optional[datetime] = None
    category: Optional[CategoryRef] = None
    buyer: Optional[PayerRef] = None
    payer: Optional[PayerRef] = None
    credit_card: Optional[CreditCardRef] = None
    splits: List[SplitRead] = []
    payments: List[ScheduledPaymentRead] = []

    class Config:
        from_attributes = True

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

class ExpensePage(BaseModel):
    data: List[ExpenseRead]
    pagination: Pagination

class SplitPreviewRequest(BaseModel):
    amount: Decimal
    splits: List[SplitIn]

class SplitPreview(BaseModel):
    payer_id: uuid.UUID
    percentage: Decimal
    amount: Decimal
