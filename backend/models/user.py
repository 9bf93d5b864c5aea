import uuid

from sqlalchemy import Column, String, DateTime, JSON
from database import Base, server_now


class User(Base):
    """An account identity. Every other row is owned by exactly one of these."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(320), nullable=False, unique=True, index=True)
    hashed_password = Column(String(100), nullable=False)
    user_metadata = Column(JSON, nullable=True)  # e.g. {"full_name": "..."}
    created_at = Column(DateTime(timezone=True), default=server_now)
