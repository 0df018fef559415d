# partilio/schemas/credit_card.py
from typing import Optional
from decimal import Decimal
from pydantic import BaseModel, Field
import uuid

from partilio.schemas.payer import PayerRef

class CreditCardBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    holder: Optional[str] = Field(None, max_length=100)
    closing_day: int = Field(..., ge=1, le=31, description="Day the billing cycle closes")
    due_day: int = Field(..., ge=1, le=31, description="Day the bill is due, in the month after closing")
    limit: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    payer_id: Optional[uuid.UUID] = None

class CreditCardCreate(CreditCardBase):
    pass

class CreditCardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    holder: Optional[str] = Field(None, max_length=100)
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    due_day: Optional[int] = Field(None, ge=1, le=31)
    limit: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    payer_id: Optional[uuid.UUID] = None

class CreditCardRead(CreditCardBase):
    id: uuid.UUID
    active: bool
    payer: Optional[PayerRef] = None

    class Config:
        from_attributes = True

class CreditCardRef(BaseModel):
    id: uuid.UUID
    name: str
    holder: Optional[str] = None

    class Config:
        from_attributes = True
