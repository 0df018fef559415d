# partilio/schemas/category.py
from typing import Optional
from pydantic import BaseModel, Field
import uuid

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None

class CategoryRead(CategoryBase):
    id: uuid.UUID
    active: bool = True
    is_default: bool = False

    class Config:
        from_attributes = True

class CategoryRef(BaseModel):
    id: uuid.UUID
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None

    class Config:
        from_attributes = True
