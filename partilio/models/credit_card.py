# partilio/models/credit_card.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, ForeignKey, Boolean, DateTime, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from partilio.core.database import Base

class CreditCard(Base):
    __tablename__ = "credit_cards"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    payer_id = Column(PG_UUID(as_uuid=True), ForeignKey("payers.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(length=100), nullable=False)
    holder = Column(String(length=100), nullable=True)
    # Calendar days (1-31); clamped to the month length when used
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    limit = Column(Numeric(12, 2), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=None, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="credit_cards")
    payer = relationship("Payer", back_populates="credit_cards", lazy="joined")
    expenses = relationship("Expense", back_populates="credit_card")

    def __repr__(self):
        return f"<CreditCard name={self.name} closing={self.closing_day} due={self.due_day}>"
