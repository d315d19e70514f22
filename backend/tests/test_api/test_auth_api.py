"""
API tests for authentication endpoints

Author: TM3
Date: 2025-11-21
"""
from unittest.mock import patch

from budstack.core.exceptions import AuthenticationError, ValidationError
from budstack.services.auth_service import RESET_REQUESTED_MESSAGE


class TestLogin:

    @patch('budstack.api.auth.AuthService')
    def test_bad_credentials_are_401(self, mock_service_class, client):
        mock_service_class.return_value.login.side_effect = AuthenticationError("Invalid email or password")

        response = client.post("/api/v1/auth/login", json={"email": "patient@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"


class TestPasswordReset:

    @patch('budstack.api.auth.AuthService')
    def test_forgot_password_answers_generically(self, mock_service_class, client):
        mock_service_class.return_value.request_password_reset.return_value = {"message": RESET_REQUESTED_MESSAGE}

        response = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 200
        assert response.json()["message"] == RESET_REQUESTED_MESSAGE

    def test_forgot_password_rejects_malformed_email(self, client):
        response = client.post("/api/v1/auth/forgot-password", json={"email": "not-an-email"})

        assert response.status_code == 422

    @patch('budstack.api.auth.AuthService')
    def test_forgot_password_is_rate_limited_per_email(self, mock_service_class, client):
        mock_service_class.return_value.request_password_reset.return_value = {"message": RESET_REQUESTED_MESSAGE}

        statuses = [
            client.post("/api/v1/auth/forgot-password", json={"email": "patient@example.com"}).status_code
            for _ in range(6)
        ]

        assert statuses == [200] * 5 + [429]

    @patch('budstack.api.auth.AuthService')
    def test_reset_password(self, mock_service_class, client):
        response = client.post(
            "/api/v1/auth/reset-password", json={"token": "a" * 64, "new_password": "new-password-1"}
        )

        assert response.status_code == 200
        mock_service_class.return_value.reset_password.assert_called_once()
        assert mock_service_class.return_value.reset_password.call_args[0][:2] == ("a" * 64, "new-password-1")

    @patch('budstack.api.auth.AuthService')
    def test_expired_token_is_400(self, mock_service_class, client):
        mock_service_class.return_value.reset_password.side_effect = ValidationError("Invalid or expired reset token")

        response = client.post(
            "/api/v1/auth/reset-password", json={"token": "stale", "new_password": "new-password-1"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired reset token"

    def test_short_password_is_rejected(self, client):
        response = client.post("/api/v1/auth/reset-password", json={"token": "a" * 64, "new_password": "short"})

        assert response.status_code == 422
