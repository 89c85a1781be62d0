"""Unit tests for API schemas."""

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError
from uuid_utils.compat import uuid7

from distportal.api.schemas.errors import APIError, ErrorCode
from distportal.api.schemas.health import HealthDetailResponse, HealthStatus
from distportal.db.schemas import (
    DeviceCreate,
    DeviceUpdate,
    DistributorCreate,
    ReleaseCreate,
    UserInvite,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_error_codes_exist(self):
        """Verify all expected error codes are defined."""
        expected = [
            "unauthorized",
            "forbidden",
            "not_found",
            "validation_error",
            "duplicate_serial_number",
            "duplicate_email",
            "invalid_state_transition",
            "internal_error",
        ]
        actual = [e.value for e in ErrorCode]
        for code in expected:
            assert code in actual, f"Missing error code: {code}"


class TestAPIError:
    def test_api_error_serialization(self):
        error = APIError(
            error_code=ErrorCode.NOT_FOUND.value,
            message="Device not found",
            details={"resource": "device", "id": "abc"},
            request_id="01234567-89ab-cdef-0123-456789abcdef",
            timestamp=datetime.now(UTC),
        )

        data = error.model_dump(mode="json")

        assert data["error_code"] == "not_found"
        assert data["details"] == {"resource": "device", "id": "abc"}

    def test_health_detail_requires_database(self):
        with pytest.raises(ValidationError):
            HealthDetailResponse(
                status=HealthStatus.HEALTHY, version="0.1.0", timestamp=datetime.now(UTC)
            )


class TestDeviceSchemas:
    """Tests for device input validation."""

    def _payload(self, **overrides):
        payload = {
            "customer_id": uuid7(),
            "serial_number": "  SN-1  ",
            "device_name": "Analyzer 1",
        }
        payload.update(overrides)
        return payload

    def test_serial_number_is_stripped(self):
        assert DeviceCreate(**self._payload()).serial_number == "SN-1"

    def test_blank_serial_number_rejected(self):
        with pytest.raises(ValidationError):
            DeviceCreate(**self._payload(serial_number="   "))

    def test_warranty_before_installation_rejected(self):
        with pytest.raises(ValidationError, match="warranty_expiry"):
            DeviceCreate(
                **self._payload(
                    installation_date=date(2025, 6, 1), warranty_expiry=date(2025, 5, 31)
                )
            )

    def test_warranty_on_installation_day_allowed(self):
        device = DeviceCreate(
            **self._payload(installation_date=date(2025, 6, 1), warranty_expiry=date(2025, 6, 1))
        )
        assert device.warranty_expiry == date(2025, 6, 1)

    def test_update_checks_warranty_only_when_both_given(self):
        DeviceUpdate(warranty_expiry=date(2020, 1, 1))
        with pytest.raises(ValidationError):
            DeviceUpdate(installation_date=date(2025, 1, 1), warranty_expiry=date(2024, 1, 1))

    def test_status_normalized(self):
        assert DeviceCreate(**self._payload(status="Active")).status == "active"


class TestAccountSchemas:
    def test_distributor_choices_normalized(self):
        distributor = DistributorCreate(
            company_name="Acme", account_type="Non-Exclusive", status="Active"
        )
        assert distributor.account_type == "non_exclusive"
        assert distributor.status == "active"

    def test_unknown_account_type_rejected(self):
        with pytest.raises(ValidationError):
            DistributorCreate(company_name="Acme", account_type="reseller")

    def test_invite_requires_valid_email(self):
        with pytest.raises(ValidationError):
            UserInvite(email="not-an-email")
        assert UserInvite(email="ops@north.example", role="Manager").role == "manager"


class TestReleaseSchemas:
    def test_release_type_normalized(self):
        release = ReleaseCreate(
            name="Suite",
            version="2.0",
            release_type="Firmware",
            file_url="https://files.example.com/fw.bin",
            file_name="fw.bin",
        )
        assert release.release_type == "firmware"
        assert release.notify_on_publish is True

    def test_negative_file_size_rejected(self):
        with pytest.raises(ValidationError):
            ReleaseCreate(
                name="Suite", version="2.0", file_url="https://x", file_name="x", file_size=-1
            )
