from pydantic import BaseModel, EmailStr, field_validator


# ─── Helpers ──────────────────────────────────────────────────────────────────
def validate_password_length(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    return v


# ─── Request Schemas ──────────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    email:    EmailStr
    password: str


class SignupRequest(BaseModel):
    email:    EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password_length(v)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


# ─── Response Schemas ─────────────────────────────────────────────────────────
class UserResponse(BaseModel):
    id:         int
    email:      str
    created_at: str


class LoginResponse(BaseModel):
    user:          UserResponse
    access_token:  str
    refresh_token: str
    token_type:    str = "Bearer"
    expires_in:    int          # seconds


class RefreshResponse(BaseModel):
    access_token: str
    expires_in:   int
