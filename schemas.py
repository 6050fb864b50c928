"""Request payload schemas."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


RoleName = Literal["user", "admin"]


class _EmailPayload(BaseModel):
    """Base for payloads that carry an email address."""

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class SignUpSchema(_EmailPayload):
    """Payload accepted by the sign-up endpoint."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: RoleName = "user"


class SignInSchema(_EmailPayload):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserIdSchema(BaseModel):
    id: int = Field(..., gt=0)


class UpdateUserSchema(_EmailPayload):
    """Partial update of a user record; at least one field is required."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[RoleName] = None

    @model_validator(mode="after")
    def require_one_field(self) -> "UpdateUserSchema":
        if not self.changes():
            raise ValueError("At least one field must be provided to update")
        return self

    def changes(self) -> dict:
        """Return only the fields the caller actually sent."""

        return self.model_dump(exclude_unset=True, exclude_none=True)
