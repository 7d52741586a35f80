"""Test cases for authentication and profile schemas."""

import pytest
from pydantic import ValidationError

from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from app.schemas.user import UserProfile


class TestLoginRequest:
    """Test cases for LoginRequest schema."""

    def test_valid_login_request(self):
        login_request = LoginRequest(email="test@example.com", password="password123")

        assert login_request.email == "test@example.com"

    def test_login_request_invalid_email(self):
        """Test login request with invalid email format."""
        with pytest.raises(ValidationError):
            LoginRequest(email="invalid_email", password="password123")

    @pytest.mark.parametrize("password", ["", "   "])
    def test_login_request_blank_password(self, password):
        with pytest.raises(ValidationError):
            LoginRequest(email="test@example.com", password=password)


def test_login_response_requires_token():
    with pytest.raises(ValidationError):
        LoginResponse.model_validate({"message": "Invalid credentials"})


class TestRegisterRequest:
    def base(self, **overrides):
        data = {
            "fullName": "Asha Rao",
            "email": "asha@example.com",
            "mobile": "+91 98765-43210",
            "password": "longpassword",
        }
        data.update(overrides)
        return data

    def test_valid_registration(self):
        request = RegisterRequest(**self.base(vehicleModelYear=2023))

        assert request.mobile == "+91 98765-43210"
        assert request.vehicleModelYear == 2023

    def test_mobile_with_letters(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self.base(mobile="98765abcde"))

    def test_short_password(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self.base(password="short"))


def test_profile_accepts_upstream_field_names():
    profile = UserProfile.model_validate(
        {"id": 15, "fullName": "Asha Rao", "vehicleNo": "KA01AB1234", "plans": []}
    )

    assert profile.userId == "15"
    assert profile.vehicleNumber == "KA01AB1234"
