"""
Planned meals. A row names either a stored recipe or a free-text dish for one
person and one slot of one day.
"""
from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.models.database import Base, attach_owner_policy


class MealPlanRow(Base):
    __tablename__ = "meal_plan"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), nullable=False)
    date = Column(Date, nullable=False)
    meal_type = Column(String, nullable=False)
    person = Column(String, nullable=False)
    recipe_id = Column(String, nullable=True)
    custom_dish = Column(String, nullable=True)
    extra_servings = Column(Integer, nullable=False, server_default="0")
    leftover_name = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "meal_type IN ('breakfast', 'lunch', 'dinner')", name="ck_meal_plan_meal_type"
        ),
        CheckConstraint("extra_servings >= 0", name="ck_meal_plan_extra_servings"),
        Index("ix_meal_plan_user_date", "user_id", "date"),
    )

    def __repr__(self):
        return f"<MealPlanRow(date='{self.date}', meal_type='{self.meal_type}', person='{self.person}')>"


attach_owner_policy(MealPlanRow.__table__)
