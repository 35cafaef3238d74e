"""
Consumption log table. item_name is free text on purpose: the inventory row it
came from may be gone.
"""
from sqlalchemy import CheckConstraint, Column, DateTime, Float, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.models.database import Base, attach_owner_policy


class ConsumptionLogRow(Base):
    __tablename__ = "consumption_logs"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=False)
    logged_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    item_name = Column(String, nullable=False)
    cost = Column(Float, nullable=True, server_default="0")
    quantity_used = Column(Float, nullable=False, server_default="0")
    unit = Column(String, nullable=True)
    reason = Column(String, nullable=False)
    dish_name = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("reason IN ('cooked', 'expired', 'snack')", name="ck_consumption_logs_reason"),
        Index("ix_consumption_logs_user_logged", "user_id", "logged_at"),
    )

    def __repr__(self):
        return f"<ConsumptionLogRow(item_name='{self.item_name}', reason='{self.reason}')>"


attach_owner_policy(ConsumptionLogRow.__table__)
