# vecinity/core/security.py
import hashlib
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.hash import bcrypt_sha256
from sqlalchemy.orm import Session

from vecinity.core.config import settings
from vecinity.core.errors import AuthError, PermissionDenied
from vecinity.db.session import get_db
from vecinity.models.user import User, UserRole

ALGO = "HS256"
RESET_TTL_MINUTES = 10
bearer = HTTPBearer(auto_error=False)

_hasher = bcrypt_sha256.using(rounds=settings.bcrypt_rounds)

def hash_password(raw: str) -> str:
    return _hasher.hash(raw)

def verify_password(raw: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt_sha256.verify(raw, hashed)

def make_token(user: User) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "id": user.id,
        "role": user.role.value,
        "email": user.email,
        "iat": now,
        "exp": now + settings.jwt_expire_days * 24 * 3600,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthError(AuthError.EXPIRED_TOKEN, "Token expired")
    except jwt.InvalidTokenError:
        raise AuthError(AuthError.INVALID_TOKEN, "Invalid token")

def _user_from_payload(payload: dict, db: Session) -> Optional[User]:
    try:
        user_id = int(payload.get("sub") or payload.get("id"))
    except (TypeError, ValueError):
        return None
    return db.get(User, user_id)

def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                     db: Session = Depends(get_db)) -> User:
    if not creds:
        raise AuthError(AuthError.INVALID_TOKEN, "Not authorized, no token provided")
    user = _user_from_payload(decode_token(creds.credentials), db)
    if not user:
        raise AuthError(AuthError.INVALID_TOKEN, "User not found")
    if not user.is_active:
        raise AuthError(AuthError.INACTIVE_ACCOUNT, "User account is deactivated")
    return user

def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                      db: Session = Depends(get_db)) -> Optional[User]:
    """Anonymous callers and bad tokens both resolve to None."""
    if not creds:
        return None
    try:
        payload = decode_token(creds.credentials)
    except AuthError:
        return None
    user = _user_from_payload(payload, db)
    if not user or not user.is_active:
        return None
    return user

def authorize(user: User, roles) -> bool:
    role_values = {r.value if isinstance(r, UserRole) else r for r in roles}
    return user.role.value in role_values

def require_role(*roles):
    def _dep(user: User = Depends(get_current_user)):
        if not authorize(user, roles):
            raise PermissionDenied(f"Role {user.role.value} is not authorized to access this resource")
        return user
    return _dep

def ensure_owner_or_role(user: User, owner_id: Optional[int], roles) -> None:
    if owner_id is not None and user.id == owner_id:
        return
    if authorize(user, roles):
        return
    raise PermissionDenied()

def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()

def make_reset_token() -> Tuple[str, str, datetime]:
    """Returns (raw token, stored hash, naive UTC expiry)."""
    raw = secrets.token_hex(20)
    expires = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(minutes=RESET_TTL_MINUTES)
    return raw, hash_reset_token(raw), expires
