#vecinity/schemas/user.py
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer

from vecinity.models.user import UserRole
from vecinity.schemas.auth import WHATSAPP_PATTERN

RoleName = Literal["usuario", "admin_operativo", "admin_general", "superadmin"]

class UserLite(BaseModel):
    id: int
    nombre: str

    class Config:
        from_attributes = True

class UserOut(BaseModel):
    id: int
    nombre: str
    calle: str
    numero: str
    email: EmailStr
    whatsapp: str
    role: UserRole
    is_active: bool
    is_verified: bool
    avatar: Optional[str] = None
    preferences: Optional[dict] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_serializer("role")
    def _role(self, role: UserRole) -> str:
        return role.value

def user_out(user) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")

class UserAdminUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    nombre: Optional[str] = Field(default=None, min_length=2, max_length=50)
    calle: Optional[str] = Field(default=None, min_length=2, max_length=100)
    numero: Optional[str] = Field(default=None, min_length=1, max_length=10)
    email: Optional[EmailStr] = None
    whatsapp: Optional[str] = Field(default=None, pattern=WHATSAPP_PATTERN)
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None

class RoleChangeIn(BaseModel):
    role: RoleName
