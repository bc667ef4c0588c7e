from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("invalid email address")
        return value


class RegisterRequest(LoginRequest):
    password: str = Field(..., min_length=8)
    display_name: str = Field(..., min_length=2, max_length=64)


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=2, max_length=64)
    avatar_uri: Optional[str] = Field(default=None, max_length=2048)
    push_token: Optional[str] = None
    notifications_enabled: Optional[bool] = None


class UserOut(BaseModel):
    id: str
    email: str
    display_name: str
    avatar_uri: Optional[str] = None
    notifications_enabled: bool = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
