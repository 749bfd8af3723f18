"""
Users API

Resolves the local user behind a verified bearer token and exposes the
current user's profile.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apps.shared.auth import get_token_claims, NOT_AUTHORIZED
from apps.shared.database import get_db
from apps.shared.errors import ApiError
from apps.shared.identity import IdentityError, fetch_profile
from apps.shared.upsert import atomic_insert_ignore
from apps.blog.models import User, DEFAULT_AVATAR

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency returning the local User for the request's token.
    The first request from a new account creates the record from the
    provider's profile.
    """
    subject = claims["sub"]
    user = db.query(User).filter(User.provider_id == subject).first()
    if user:
        return user

    try:
        profile = fetch_profile(subject, claims)
    except IdentityError:
        raise ApiError(NOT_AUTHORIZED, 401)

    email = profile.get("email")
    insert_data = {
        "name": (profile.get("name") or "User")[:50],
        "email": email.strip().lower() if email else None,
        "avatar": profile.get("avatar") or DEFAULT_AVATAR,
    }
    try:
        user = atomic_insert_ignore(db, User, "provider_id", subject, insert_data)
    except IntegrityError:
        # Email already belongs to another local account
        db.rollback()
        logger.warning(f"Email for provider subject {subject} is taken; storing user without email")
        user = atomic_insert_ignore(db, User, "provider_id", subject, {**insert_data, "email": None})
    logger.info(f"Resolved local user {user.id} for new provider subject {subject}")
    return user


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    """Get the currently authenticated user."""
    return {"success": True, "data": user.to_profile()}
