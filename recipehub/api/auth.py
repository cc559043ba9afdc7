"""
Auth API routes.

- POST /api/auth/register
- POST /api/auth/login
- GET  /api/auth/me
"""
import re

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from recipehub.core.auth import create_access_token
from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, get_access_context, resolve_access
from recipehub.features.users.service import authenticate, register_user

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# bcrypt only reads the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("must be a valid email")
    return value


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    name: str = Field(min_length=2)

    @field_validator("email")
    @classmethod
    def email_valid(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if len(value.strip()) < 2:
            raise ValueError("name must be at least 2 characters")
        return value.strip()


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def email_valid(cls, value: str) -> str:
        return _check_email(value)


def _user_payload(ctx: AccessContext) -> dict:
    return {
        "id": ctx.user_id,
        "email": ctx.email,
        "name": ctx.name,
        "subscription": ctx.subscription_summary(),
    }


def _session_payload(user_id: str, email: str) -> dict:
    ctx = resolve_access(user_id)
    return {"token": create_access_token(user_id, email), "user": _user_payload(ctx)}


@router.post("/register", status_code=201)
def register(body: RegisterRequest):
    user = register_user(body.email, body.password, body.name)
    return success(_session_payload(user.id, user.email), "User registered successfully")


@router.post("/login")
def login(body: LoginRequest):
    user = authenticate(body.email, body.password)
    return success(_session_payload(user.id, user.email), "Login successful")


@router.get("/me")
def me(ctx: AccessContext = Depends(get_access_context)):
    return success(_user_payload(ctx))
