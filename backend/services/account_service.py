"""
account_service.py — Account identities
Sign-up (which materializes the profile through the after_insert hook on
User), sign-in, session tracking for sign-out, and account deletion with its
cascades.
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import create_token, hash_password, verify_password
from database import server_now
from models import OWNED_TABLES
from models.profile import Profile
from models.session import AuthSession
from models.user import User
from services.change_hub import change_hub

logger = logging.getLogger(__name__)


class AccountExists(Exception):
    pass


class AccountService:
    @staticmethod
    def sign_up(db: Session, email: str, password: str, metadata: dict | None = None) -> User:
        user = User(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            user_metadata=metadata or {},
        )
        try:
            db.add(user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AccountExists(email)
        db.refresh(user)
        logger.info("created account %s", user.id)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> User | None:
        user = db.query(User).filter_by(email=email.strip().lower()).first()
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def open_session(db: Session, user: User) -> str:
        """Record a new session and return its access token."""
        session = AuthSession(user_id=user.id, token_jti=str(uuid.uuid4()))
        db.add(session)
        db.commit()
        return create_token(user.id, user.email, session.token_jti)

    @staticmethod
    def revoke_session(db: Session, user_id: str, jti: str):
        """Mark a token as signed out. Other sessions of the identity stay valid."""
        session = db.query(AuthSession).filter_by(token_jti=jti).first()
        if session is None:
            session = AuthSession(user_id=user_id, token_jti=jti)
            db.add(session)
        session.is_revoked = True
        session.revoked_at = server_now()
        db.commit()
        logger.info("revoked session for %s", user_id)

    @staticmethod
    def get_profile(db: Session, user_id: str) -> Profile | None:
        return db.query(Profile).filter_by(id=user_id).first()

    @staticmethod
    def delete_account(db: Session, user_id: str) -> bool:
        """Delete the identity; the database cascades to every owned row."""
        user = db.query(User).filter_by(id=user_id).first()
        if user is None:
            return False
        db.delete(user)
        db.commit()
        for table in OWNED_TABLES:
            change_hub.publish(table, user_id, "DELETE")
        logger.info("deleted account %s", user_id)
        return True
