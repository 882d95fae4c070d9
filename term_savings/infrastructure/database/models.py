"""SQLAlchemy ORM models for persisted deposits"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Integer, DateTime, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class DecimalText(TypeDecorator):
    """Exact decimal stored as text (SQLite has no native decimal type)"""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class SavingsDeposit(Base):
    """Fixed-term savings deposit record"""

    __tablename__ = "savings_deposit"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=True, index=True)
    plan_id = Column(Integer, nullable=False)
    principal = Column(DecimalText, nullable=False)
    apy_basis_points = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False)
    maturity_at = Column(DateTime(timezone=True), nullable=False)
    state = Column(Text, nullable=False, default="active")
    final_value = Column(DecimalText, nullable=True)
    payout = Column(DecimalText, nullable=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
