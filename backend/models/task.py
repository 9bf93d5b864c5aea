import uuid

from sqlalchemy import Column, String, Text, Boolean, Date, Time, DateTime, ForeignKey
from database import Base, server_now


class Task(Base):
    __tablename__ = "tasks"
    owner_column = "user_id"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    task_date = Column(Date, nullable=False, index=True)
    alarm_time = Column(Time, nullable=True)
    created_at = Column(DateTime(timezone=True), default=server_now)
    updated_at = Column(DateTime(timezone=True), default=server_now, onupdate=server_now)
