from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request, HTTPException, status
from jose import jwt, JWTError
from sqlalchemy.orm import Session
import bcrypt
import uuid

from config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_HOURS
from database import SessionLocal, get_db
from models.session import AuthSession


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    # Ensure it doesn't exceed 72 bytes to prevent bcrypt ValueError
    pw_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    try:
        pw_bytes = plain_password.encode('utf-8')[:72]
        hash_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except ValueError:
        return False


def create_token(user_id: str, email: str, jti: str | None = None) -> str:
    """Create an access token for an identity, with expiry and a unique JTI."""
    expire = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRY_HOURS)
    to_encode = {
        "sub": user_id,
        "email": email,
        "exp": expire,
        "jti": jti or str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict | None:
    """Decode and verify a JWT token. Returns the payload or None on failure."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload
    except JWTError:
        return None


def is_session_valid(db: Session, jti: str) -> bool:
    """Check if the session JTI has been revoked in the database."""
    session = db.query(AuthSession).filter_by(token_jti=jti).first()
    if session is None:
        return True  # Tokens issued before sessions were recorded
    return not session.is_revoked


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def claims_from_header(auth_header: str | None, db: Session | None = None) -> dict:
    """Resolve a `Bearer <token>` header to the token's claims.
    Raises HTTP 401 if the header is missing, the token is invalid, or (when a
    session is given) the token has been revoked by sign-out."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Missing or invalid Authorization header")

    token = auth_header.split(" ", 1)[1]
    payload = verify_token(token)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if not payload.get("sub") or not payload.get("jti"):
        raise _unauthorized("Token payload missing required claims")

    if db is not None and not is_session_valid(db, payload["jti"]):
        raise _unauthorized("Session has been revoked")
    return payload


def identity_from_header(auth_header: str | None, db: Session | None = None) -> str:
    """The identity a `Bearer <token>` header was issued for."""
    return claims_from_header(auth_header, db)["sub"]


async def get_current_session(request: Request, db: Session = Depends(get_db)) -> dict:
    """FastAPI dependency — the verified, unrevoked claims of the caller's token."""
    return claims_from_header(request.headers.get("Authorization"), db)


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> str:
    """
    FastAPI dependency — extracts the Bearer token from the Authorization
    header, verifies it, and returns the identity (user id).
    """
    return identity_from_header(request.headers.get("Authorization"), db)


async def get_stream_user(request: Request) -> str:
    """Same check as get_current_user, with a session that is closed before a
    long-lived response starts streaming."""
    db = SessionLocal()
    try:
        return identity_from_header(request.headers.get("Authorization"), db)
    finally:
        db.close()
