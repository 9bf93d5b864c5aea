from sqlalchemy import Column, String, Text, DateTime, ForeignKey, event
from database import Base, server_now
from models.user import User


class Profile(Base):
    __tablename__ = "profiles"
    owner_column = "id"

    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    full_name = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=server_now)
    updated_at = Column(DateTime(timezone=True), default=server_now, onupdate=server_now)


@event.listens_for(User, "after_insert")
def create_profile_for_new_user(mapper, connection, target):
    """Materialize the companion profile row inside the sign-up transaction."""
    metadata = target.user_metadata or {}
    connection.execute(
        Profile.__table__.insert().values(
            id=target.id,
            full_name=metadata.get("full_name") or "",
            created_at=server_now(),
            updated_at=server_now(),
        )
    )
