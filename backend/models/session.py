import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from database import Base, server_now


class AuthSession(Base):
    """One issued access token, tracked by its JTI so sign-out can revoke it."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_jti = Column(String(100), unique=True, nullable=False)  # JWT ID
    is_revoked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=server_now)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
