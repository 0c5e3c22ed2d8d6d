# File: vecinity/schemas/auth.py

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

WHATSAPP_PATTERN = r"^\+?[1-9]\d{1,14}$"

class RegisterIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre: str = Field(min_length=2, max_length=50)
    calle: str = Field(min_length=2, max_length=100)
    numero: str = Field(min_length=1, max_length=10)
    email: EmailStr
    whatsapp: str = Field(pattern=WHATSAPP_PATTERN)
    password: str = Field(min_length=6, max_length=128)

class RegisterAdminIn(RegisterIn):
    role: Literal["admin_operativo", "admin_general"] = "admin_general"

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

class EmailOnly(BaseModel):
    email: EmailStr

class ResetIn(BaseModel):
    password: str = Field(min_length=6, max_length=128)

class PasswordChangeIn(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)

class ProfileIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre: Optional[str] = Field(default=None, min_length=2, max_length=50)
    calle: Optional[str] = Field(default=None, min_length=2, max_length=100)
    numero: Optional[str] = Field(default=None, min_length=1, max_length=10)
    whatsapp: Optional[str] = Field(default=None, pattern=WHATSAPP_PATTERN)
    preferences: Optional[dict] = None
