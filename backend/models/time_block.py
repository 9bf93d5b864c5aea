import uuid

from sqlalchemy import Column, String, Text, Date, Time, DateTime, ForeignKey
from database import Base, server_now


class TimeBlock(Base):
    __tablename__ = "time_blocks"
    owner_column = "user_id"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    block_date = Column(Date, nullable=False, index=True)
    # [start_time, end_time); overlapping blocks are allowed
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=server_now)
    updated_at = Column(DateTime(timezone=True), default=server_now, onupdate=server_now)
