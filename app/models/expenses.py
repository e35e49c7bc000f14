import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, DECIMAL, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    group_id = Column(String, nullable=False, index=True)  # Reference to groups (no FK constraint)
    paid_by = Column(String, nullable=False, index=True)  # Reference to user service
    amount = Column(DECIMAL(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    participants = relationship(
        "ExpenseParticipant", back_populates="expense", cascade="all, delete-orphan", lazy="selectin"
    )


class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Reference to user service
    amount_owed = Column(DECIMAL(12, 2), nullable=False)

    expense = relationship("Expense", back_populates="participants")
