# partilio/schemas/user.py
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
import uuid

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None

class ChangePassword(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

class TokenStatus(BaseModel):
    valid: bool
    user_id: uuid.UUID
    email: EmailStr

class OnboardingStatus(BaseModel):
    is_complete: bool
    active_payers: int
    categories: int
