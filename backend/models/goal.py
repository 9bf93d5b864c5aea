import uuid

from sqlalchemy import Column, String, Text, Boolean, Date, DateTime, ForeignKey, CheckConstraint
from database import Base, server_now


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        CheckConstraint("goal_type IN ('yearly', 'monthly')", name="ck_goals_goal_type"),
    )
    owner_column = "user_id"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    goal_type = Column(String(20), nullable=False)  # yearly/monthly
    target_date = Column(Date, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=server_now)
    updated_at = Column(DateTime(timezone=True), default=server_now, onupdate=server_now)
