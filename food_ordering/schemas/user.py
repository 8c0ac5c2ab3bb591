"""Pydantic schemas for accounts, auth and profile settings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from food_ordering.models.user import Role


class UserRead(BaseModel):
    """Safe view of a user; the password hash is never exposed."""

    id: int
    nickname: str
    email: str
    role: Role
    delivery_address: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserBrief(BaseModel):
    id: int
    nickname: str
    email: str
    delivery_address: str | None = None

    model_config = {"from_attributes": True}


# Request bodies keep every field optional so that missing values are
# reported together by the endpoint's own validation.
class RegisterRequest(BaseModel):
    nickname: str | None = None
    email: str | None = None
    password: str | None = None
    delivery_address: str | None = None


class StaffCreateRequest(BaseModel):
    nickname: str | None = None
    email: str | None = None
    password: str | None = None


class StaffUpdateRequest(BaseModel):
    nickname: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ProfileUpdateRequest(BaseModel):
    nickname: str | None = None
    email: str | None = None
    delivery_address: str | None = None


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")


class UserData(BaseModel):
    user: UserRead


class UserListData(BaseModel):
    users: list[UserRead]


class LoginData(BaseModel):
    token: str
    user: UserRead
