"""
Auth routes, shaped like the hosted platform's /auth/v1 endpoints so the
same client code can sign in against either.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from auth import get_current_session, get_current_user
from database import get_db
from schemas import SignUpRequest, SignInRequest
from services.account_service import AccountService, AccountExists
from services.record_service import serialize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/v1", tags=["Auth"])


def _session_payload(db: Session, user) -> dict:
    return {
        "access_token": AccountService.open_session(db, user),
        "token_type": "bearer",
        "user": {"id": user.id, "email": user.email, "user_metadata": user.user_metadata or {}},
    }


# ── Routes ────────────────────────────────────────────────────────
@router.post("/signup")
async def signup(body: SignUpRequest, db: Session = Depends(get_db)):
    """Create an identity. Its profile row is created in the same transaction."""
    try:
        user = AccountService.sign_up(db, body.email, body.password, body.data)
    except AccountExists:
        raise HTTPException(status_code=400, detail="User already registered")
    return _session_payload(db, user)


@router.post("/token")
async def token(body: SignInRequest, grant_type: str = Query("password"), db: Session = Depends(get_db)):
    """Password grant — exchange email + password for an access token."""
    if grant_type != "password":
        raise HTTPException(status_code=400, detail="Unsupported grant_type")
    user = AccountService.authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid login credentials")
    return _session_payload(db, user)


@router.post("/logout")
async def logout(claims: dict = Depends(get_current_session), db: Session = Depends(get_db)):
    """Sign out: the presented token is revoked and refused from now on."""
    AccountService.revoke_session(db, claims["sub"], claims["jti"])
    return {"status": "success"}


@router.get("/user")
async def me(user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    """Return the current identity with its profile."""
    profile = AccountService.get_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"id": user_id, "profile": serialize(profile)}


@router.delete("/user")
async def delete_me(user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete the account and everything it owns."""
    if not AccountService.delete_account(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"status": "success"}
