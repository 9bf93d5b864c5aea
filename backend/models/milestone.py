import uuid

from sqlalchemy import Column, String, Text, Boolean, Date, DateTime, ForeignKey
from database import Base, server_now


class Milestone(Base):
    __tablename__ = "milestones"
    owner_column = "user_id"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(String(36), ForeignKey("goals.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    target_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=server_now)
    updated_at = Column(DateTime(timezone=True), default=server_now, onupdate=server_now)
