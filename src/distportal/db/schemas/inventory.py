"""Pydantic schemas for customer and device API validation."""

from datetime import date, datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from distportal.db.models.base import normalize_choice
from distportal.db.models.customer import DeviceStatus


def _check_warranty(installation_date: date | None, warranty_expiry: date | None) -> None:
    if installation_date and warranty_expiry and warranty_expiry < installation_date:
        raise ValueError("warranty_expiry must not be before installation_date")


class DeviceCreate(BaseModel):
    """Schema for registering a device at a customer site.

    The warranty must not end before the installation date. This is an
    input rule only; stored rows are not re-validated.
    """

    customer_id: UUID
    serial_number: str = Field(..., min_length=1, max_length=100)
    device_name: str = Field(..., min_length=1, max_length=255)
    device_model: str | None = Field(None, max_length=255)
    product_id: UUID | None = None
    product_name: str | None = Field(None, max_length=255)
    status: str = DeviceStatus.ACTIVE.value
    installation_date: date | None = None
    warranty_expiry: date | None = None
    location_description: str | None = None
    internal_notes: str | None = None
    current_firmware_version: str | None = Field(None, max_length=50)
    current_software_version: str | None = Field(None, max_length=50)

    @field_validator("serial_number")
    @classmethod
    def validate_serial_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("serial_number must not be blank")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return normalize_choice(v, DeviceStatus, "status")

    @model_validator(mode="after")
    def validate_warranty(self) -> Self:
        _check_warranty(self.installation_date, self.warranty_expiry)
        return self


class DeviceUpdate(BaseModel):
    """Schema for editing a device; omitted fields are left unchanged."""

    serial_number: str | None = Field(None, min_length=1, max_length=100)
    device_name: str | None = Field(None, min_length=1, max_length=255)
    device_model: str | None = Field(None, max_length=255)
    status: str | None = None
    installation_date: date | None = None
    warranty_expiry: date | None = None
    location_description: str | None = None
    internal_notes: str | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str | None) -> str | None:
        return None if v is None else normalize_choice(v, DeviceStatus, "status")

    @model_validator(mode="after")
    def validate_warranty(self) -> Self:
        _check_warranty(self.installation_date, self.warranty_expiry)
        return self


class DeviceResponse(BaseModel):
    device_id: UUID
    customer_id: UUID
    product_id: UUID | None
    serial_number: str
    device_name: str
    device_model: str | None
    status: str
    installation_date: date | None
    warranty_expiry: date | None
    location_description: str | None
    current_firmware_version: str | None
    current_software_version: str | None
    last_update_date: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
