# File: vecinity/routers/auth.py

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from vecinity.core.config import settings
from vecinity.core.ratelimit import limiter
from vecinity.core.security import get_current_user, make_token, require_role
from vecinity.db.session import get_db
from vecinity.models.user import User, UserRole
from vecinity.schemas.auth import (
    EmailOnly,
    LoginIn,
    PasswordChangeIn,
    ProfileIn,
    RegisterAdminIn,
    RegisterIn,
    ResetIn,
)
from vecinity.schemas.common import ok
from vecinity.schemas.user import user_out
from vecinity.services import accounts
from vecinity.services.notify_email import send_reset_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _session(user: User) -> dict:
    return {"token": make_token(user), "user": user_out(user)}

@router.post("/register", status_code=201)
@limiter.limit(settings.rate_limit_auth)
def register(request: Request, body: RegisterIn, db: Session = Depends(get_db)):
    user = accounts.register(db, body)
    return ok(_session(user), "User registered successfully")

@router.post("/register-admin", status_code=201)
def register_admin(
    body: RegisterAdminIn,
    db: Session = Depends(get_db),
    current: User = Depends(require_role(UserRole.superadmin)),
):
    user = accounts.register(db, body, role=UserRole(body.role))
    logger.info("Admin account %s (%s) provisioned by %s", user.id, user.role.value, current.id)
    return ok(user_out(user), "Administrator registered successfully")

@router.post("/login")
@limiter.limit(settings.rate_limit_auth)
def login(request: Request, body: LoginIn, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, body.email, body.password)
    return ok(_session(user), "Login successful")

@router.get("/me")
def me(current: User = Depends(get_current_user)):
    return ok(user_out(current))

@router.post("/logout")
def logout(current: User = Depends(get_current_user)):
    # tokens are stateless; the client drops its copy
    return ok(message="Logout successful")

@router.put("/profile")
def update_profile(
    body: ProfileIn,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = accounts.update_profile(db, current, body)
    return ok(user_out(user), "Profile updated successfully")

@router.put("/password")
def change_password(
    body: PasswordChangeIn,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    accounts.change_password(db, current, body.current_password, body.new_password)
    return ok(message="Password updated successfully")

@router.post("/forgot-password")
@limiter.limit(settings.rate_limit_auth)
def forgot_password(
    request: Request,
    body: EmailOnly,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    token = accounts.start_password_reset(db, body.email)
    data = None
    if token:
        background_tasks.add_task(send_reset_password, body.email.lower(), token)
        if settings.is_development:
            data = {"reset_token": token}
    return ok(data, "If an account exists with this email, a password reset link has been sent.")

@router.put("/reset-password/{token}")
@limiter.limit(settings.rate_limit_auth)
def reset_password(request: Request, token: str, body: ResetIn, db: Session = Depends(get_db)):
    user = accounts.reset_password(db, token, body.password)
    return ok(_session(user), "Password reset successfully")
