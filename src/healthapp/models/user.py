"""Pydantic v2 models for users, credentials and auth payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

UserRole = Literal["patient", "doctor", "admin"]


class Credentials(BaseModel):
    """Bearer token pair held by the credential store."""

    model_config = ConfigDict(populate_by_name=True)

    accessToken: str
    refreshToken: str | None = None


class User(BaseModel):
    """A HealthApp account (patient, doctor or admin).

    Role-specific fields (``specialization`` for doctors, ``permissions``
    for admins, ...) are kept as extra attributes.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    email: str
    firstName: str
    lastName: str
    role: UserRole
    phoneNumber: str | None = None
    dateOfBirth: str | None = None
    gender: Literal["male", "female", "other"] | None = None
    address: str | dict[str, Any] | None = None
    profileImage: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.firstName} {self.lastName}".strip()


class LoginCredentials(BaseModel):
    email: str
    password: str


class RegisterCredentials(BaseModel):
    """Payload for ``POST /api/auth/register``."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    firstName: str
    lastName: str
    role: UserRole = "patient"
    phoneNumber: str | None = None
    dateOfBirth: str | None = None
    gender: Literal["male", "female", "other"] | None = None
    address: str | dict[str, Any] | None = None


class AuthResponse(BaseModel):
    """Body returned by the login and register endpoints.

    Older backends send the access token as ``token``; both spellings are
    accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    user: User
    accessToken: str = Field(validation_alias=AliasChoices("accessToken", "token"))
    refreshToken: str | None = None

    @property
    def credentials(self) -> Credentials:
        return Credentials(accessToken=self.accessToken, refreshToken=self.refreshToken)


class RefreshResponse(BaseModel):
    """Body returned by ``POST /api/auth/refresh-token``."""

    model_config = ConfigDict(populate_by_name=True)

    accessToken: str = Field(validation_alias=AliasChoices("accessToken", "token"))
    refreshToken: str | None = None


class AuthState(BaseModel):
    """Authentication state restored from the credential store."""

    user: User | None = None
    isAuthenticated: bool = False


class PasswordResetResponse(BaseModel):
    """Body of the forgot-password, reset-password and verify-token calls."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    success: bool = False
    data: dict[str, Any] | None = None
