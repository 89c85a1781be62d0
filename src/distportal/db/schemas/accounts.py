"""Pydantic schemas for distributor and user API validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from distportal.db.models.base import normalize_choice
from distportal.db.models.distributor import AccountStatus, AccountType, UserRole


class FirstUserInput(BaseModel):
    """First user created together with a distributor."""

    email: EmailStr
    full_name: str | None = Field(None, max_length=255)


class DistributorCreate(BaseModel):
    """Schema for provisioning a distributor."""

    company_name: str = Field(..., min_length=1, max_length=255)
    territory: str | None = Field(None, max_length=255)
    account_type: str = AccountType.NON_EXCLUSIVE.value
    status: str = AccountStatus.PENDING.value
    contact_name: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    country: str | None = Field(None, max_length=100)
    notes: str | None = None

    first_user: FirstUserInput | None = None
    send_invite: bool = False

    @field_validator("account_type")
    @classmethod
    def validate_account_type(cls, v: str) -> str:
        return normalize_choice(v, AccountType, "account_type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return normalize_choice(v, AccountStatus, "status")


class DistributorUpdate(BaseModel):
    """Schema for editing a distributor; omitted fields are left unchanged."""

    company_name: str | None = Field(None, min_length=1, max_length=255)
    territory: str | None = Field(None, max_length=255)
    account_type: str | None = None
    status: str | None = None
    contact_name: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    country: str | None = Field(None, max_length=100)
    notes: str | None = None

    @field_validator("account_type")
    @classmethod
    def validate_account_type(cls, v: str | None) -> str | None:
        return None if v is None else normalize_choice(v, AccountType, "account_type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str | None) -> str | None:
        return None if v is None else normalize_choice(v, AccountStatus, "status")


class DistributorResponse(BaseModel):
    distributor_id: UUID
    company_name: str
    territory: str | None
    account_type: str
    status: str
    contact_name: str | None
    contact_email: str | None
    contact_phone: str | None
    country: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserInvite(BaseModel):
    """Schema for inviting a user into a distributor."""

    email: EmailStr
    full_name: str | None = Field(None, max_length=255)
    role: str = UserRole.USER.value
    send_invite: bool = True

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return normalize_choice(v, UserRole, "role")


class UserResponse(BaseModel):
    user_id: UUID
    distributor_id: UUID
    email: str
    full_name: str | None
    role: str
    status: str
    invited_at: datetime | None
    last_login_at: datetime | None

    model_config = {"from_attributes": True}
