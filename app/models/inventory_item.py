"""
Inventory item table: one row per tracked grocery batch.
"""
from sqlalchemy import Column, Date, DateTime, Float, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.models.database import Base, attach_owner_policy


class InventoryItemRow(Base):
    __tablename__ = "inventory_items"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=False)
    name = Column(String, nullable=False)
    quantity = Column(Float, nullable=False, server_default="0")
    unit = Column(String, nullable=False, server_default="st")
    category = Column(String, nullable=True)
    expiry_date = Column(Date, nullable=True)
    # total price for the current quantity, not a unit price
    price_info = Column(Float, nullable=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    source = Column(String, nullable=False, server_default="manual")

    __table_args__ = (Index("ix_inventory_items_user_added", "user_id", "added_at"),)

    def __repr__(self):
        return f"<InventoryItemRow(name='{self.name}', quantity={self.quantity} {self.unit})>"


attach_owner_policy(InventoryItemRow.__table__)
