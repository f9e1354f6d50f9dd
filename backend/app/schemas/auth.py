from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    # Both optional so a missing field is still recorded as a failed attempt
    username: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)


class LoginResponse(BaseModel):
    username: str
    display_name: str | None = None
    last_login: datetime | None = None


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(max_length=128)
    display_name: str | None = Field(default=None, max_length=255)


class LockoutStatusResponse(BaseModel):
    username: str
    locked: bool
    failure_count: int
    remaining_seconds: int
    remaining_minutes: int
