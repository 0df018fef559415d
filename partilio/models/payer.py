# partilio/models/payer.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, ForeignKey, Boolean, DateTime
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from partilio.core.database import Base

class Payer(Base):
    __tablename__ = "payers"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(length=100), nullable=False)
    color = Column(String(length=20), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=None, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="payers")
    credit_cards = relationship("CreditCard", back_populates="payer")

    def __repr__(self):
        return f"<Payer name={self.name} user_id={self.user_id}>"
