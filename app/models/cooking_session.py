"""
Cooking sessions and their line items. A session is written once and never updated.
"""
from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.database import Base, attach_owner_policy


class CookingSessionRow(Base):
    __tablename__ = "cooking_sessions"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    dish_name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    total_cost = Column(Float, nullable=False, server_default="0")
    notes = Column(Text, nullable=True)

    # Relationship
    items = relationship(
        "CookingSessionItemRow", back_populates="session", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<CookingSessionRow(dish_name='{self.dish_name}', total_cost={self.total_cost})>"


class CookingSessionItemRow(Base):
    __tablename__ = "cooking_session_items"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    session_id = Column(
        UUID(as_uuid=False),
        ForeignKey("cooking_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_name = Column(String, nullable=False)
    quantity_used = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    cost = Column(Float, nullable=False, server_default="0")

    # Relationship
    session = relationship("CookingSessionRow", back_populates="items")

    def __repr__(self):
        return f"<CookingSessionItemRow(item_name='{self.item_name}', cost={self.cost})>"


attach_owner_policy(CookingSessionRow.__table__)
# items have no owner column; visibility follows the parent session
attach_owner_policy(
    CookingSessionItemRow.__table__,
    using=(
        "EXISTS (SELECT 1 FROM cooking_sessions s "
        "WHERE s.id = session_id AND s.user_id = auth.uid())"
    ),
)
