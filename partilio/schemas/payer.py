# partilio/schemas/payer.py
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid

class PayerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Person who shares the costs")
    color: Optional[str] = Field(None, max_length=20, description="Hex color used by the UI, e.g. #4ECDC4")

class PayerCreate(PayerBase):
    pass

class PayerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, max_length=20)

class PayerRead(PayerBase):
    id: uuid.UUID
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PayerRef(BaseModel):
    id: uuid.UUID
    name: str
    color: Optional[str] = None

    class Config:
        from_attributes = True
