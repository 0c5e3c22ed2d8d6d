# vecinity/services/accounts.py
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from vecinity.core.errors import AuthError, Conflict, ValidationFailed
from vecinity.core.security import (
    hash_password,
    verify_password,
    make_reset_token,
    hash_reset_token,
)
from vecinity.models.user import User, UserRole, default_preferences
from vecinity.schemas.auth import RegisterIn, ProfileIn

logger = logging.getLogger(__name__)


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def register(db: Session, body: RegisterIn, role: UserRole = UserRole.usuario) -> User:
    email = body.email.lower()
    if find_by_email(db, email):
        raise Conflict("A user with that email already exists")
    user = User(
        nombre=body.nombre,
        calle=body.calle,
        numero=body.numero,
        email=email,
        whatsapp=body.whatsapp,
        hashed_password=hash_password(body.password),
        role=role,
        is_active=True,
        is_verified=False,
        preferences=default_preferences(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = find_by_email(db, email)
    # same message for unknown email and wrong password
    if not user or not verify_password(password, user.hashed_password):
        raise AuthError(AuthError.INVALID_CREDENTIALS, "Invalid email or password")
    if not user.is_active:
        raise AuthError(AuthError.INACTIVE_ACCOUNT, "Your account has been deactivated. Please contact support.")
    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current: str, new: str) -> None:
    if not verify_password(current, user.hashed_password):
        raise ValidationFailed.single("current_password", "Current password is incorrect")
    user.hashed_password = hash_password(new)
    db.commit()


def merge_preferences(current: dict, patch: dict) -> dict:
    """Nested dicts are merged key by key; anything else in ``patch`` replaces the stored value."""
    merged = dict(current)
    for k, v in patch.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = merge_preferences(merged[k], v)
        else:
            merged[k] = v
    return merged


def update_profile(db: Session, user: User, body: ProfileIn) -> User:
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    prefs = data.pop("preferences", None)
    for k, v in data.items():
        setattr(user, k, v)
    if prefs is not None:
        user.preferences = merge_preferences(user.preferences or default_preferences(), prefs)
    db.commit()
    db.refresh(user)
    return user


def start_password_reset(db: Session, email: str) -> Optional[str]:
    """Returns the raw token for a known account, None otherwise."""
    user = find_by_email(db, email)
    if not user or not user.is_active:
        return None
    raw, hashed, expires = make_reset_token()
    user.reset_password_token = hashed
    user.reset_password_expire = expires
    db.commit()
    return raw


def reset_password(db: Session, raw_token: str, new_password: str) -> User:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    user = (
        db.query(User)
        .filter(
            User.reset_password_token == hash_reset_token(raw_token),
            User.reset_password_expire > now,
        )
        .first()
    )
    if not user:
        raise ValidationFailed("Invalid or expired reset token")
    user.hashed_password = hash_password(new_password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()
    db.refresh(user)
    return user
