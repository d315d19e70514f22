"""
Unit tests for AuthService: login, patient sign-up and password resets

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest

from budstack.core.auth import decode_token, hash_password, verify_password, ROLE_PATIENT
from budstack.core.exceptions import AuthenticationError, ConflictError, ValidationError
from budstack.domain.audit import AuditActions
from budstack.domain.user import User, PatientRegistration
from budstack.domain.webhook import WebhookEvents
from budstack.services.auth_service import (
    AuthService, hash_reset_token, RESET_REQUESTED_MESSAGE,
)

PASSWORD = "correct-horse-1"


@pytest.fixture(scope="module")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def patient(password_hash):
    return User(
        id="patient-1",
        email="patient@example.com",
        name="Ana",
        role=ROLE_PATIENT,
        tenant_id="tenant-1",
        password_hash=password_hash,
    )


def build_service(background_tasks=None):
    return AuthService(
        repository=Mock(),
        audit_service=Mock(),
        webhook_service=Mock(),
        email_service=Mock(),
        background_tasks=background_tasks,
    )


class TestLogin:

    def test_login_returns_bearer_token(self, patient):
        service = build_service()
        service.repository.find_by_email.return_value = patient

        result = service.login("patient@example.com", PASSWORD)

        assert result["token_type"] == "bearer"
        assert "password_hash" not in result["user"]
        claims = decode_token(result["access_token"])
        assert claims["sub"] == "patient-1"
        assert claims["tenant_id"] == "tenant-1"
        assert service.audit_service.log.call_args[0][0] == AuditActions.USER_LOGIN

    def test_wrong_password(self, patient):
        service = build_service()
        service.repository.find_by_email.return_value = patient

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            service.login("patient@example.com", "not-the-password")

        service.audit_service.log.assert_not_called()

    def test_unknown_email_gets_the_same_error(self):
        service = build_service()
        service.repository.find_by_email.return_value = None

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            service.login("nobody@example.com", PASSWORD)

    def test_disabled_account(self, patient):
        service = build_service()
        service.repository.find_by_email.return_value = patient.model_copy(update={"is_active": False})

        with pytest.raises(AuthenticationError, match="Account is disabled"):
            service.login("patient@example.com", PASSWORD)


class TestRegisterPatient:

    def test_duplicate_email(self, sample_tenant):
        service = build_service()
        service.repository.email_exists.return_value = True

        with pytest.raises(ConflictError):
            service.register_patient(sample_tenant, PatientRegistration(email="patient@example.com", password=PASSWORD))

        service.repository.create.assert_not_called()

    def test_patient_is_bound_to_the_store(self, sample_tenant, patient):
        background_tasks = MagicMock()
        service = build_service(background_tasks)
        service.repository.email_exists.return_value = False
        service.repository.create.return_value = patient

        result = service.register_patient(
            sample_tenant, PatientRegistration(email="patient@example.com", password=PASSWORD, name="Ana")
        )

        kwargs = service.repository.create.call_args.kwargs
        assert kwargs["role"] == ROLE_PATIENT
        assert kwargs["tenant_id"] == "tenant-1"
        assert kwargs["password_hash"] != PASSWORD
        assert verify_password(PASSWORD, kwargs["password_hash"])
        assert result["user"]["id"] == "patient-1"
        assert service.audit_service.log.call_args[0][0] == AuditActions.USER_SIGNUP
        dispatch_args = service.webhook_service.dispatch.call_args[0]
        assert dispatch_args[:3] == (background_tasks, WebhookEvents.USER_REGISTERED, "tenant-1")


class TestForgotPassword:

    def test_known_email_gets_a_link(self, patient):
        service = build_service()
        service.repository.find_by_email.return_value = patient

        with patch('budstack.services.auth_service.settings') as mock_settings:
            mock_settings.PASSWORD_RESET_TTL_MINUTES = 60
            mock_settings.APP_URL = "https://budstack.to/"
            result = service.request_password_reset("patient@example.com")

        assert result == {"message": RESET_REQUESTED_MESSAGE}

        user_id, token_hash, expires_at = service.repository.set_reset_token.call_args[0]
        assert user_id == "patient-1"
        remaining = (expires_at - datetime.now(timezone.utc)).total_seconds()
        assert 3500 < remaining <= 3600

        to, reset_url, ttl = service.email_service.send_password_reset_link.call_args[0]
        assert to == "patient@example.com"
        assert ttl == 60
        assert reset_url.startswith("https://budstack.to/auth/reset-password/")
        token = reset_url.rsplit("/", 1)[1]
        assert len(token) == 64
        assert set(token) <= set("0123456789abcdef")
        assert hash_reset_token(token) == token_hash
        assert token_hash != token
        assert service.audit_service.log.call_args[0][0] == AuditActions.USER_PASSWORD_RESET_REQUESTED

    def test_unknown_email_gets_the_same_answer(self):
        service = build_service()
        service.repository.find_by_email.return_value = None

        result = service.request_password_reset("nobody@example.com")

        assert result == {"message": RESET_REQUESTED_MESSAGE}
        service.repository.set_reset_token.assert_not_called()
        service.email_service.send_password_reset_link.assert_not_called()
        service.audit_service.log.assert_not_called()

    def test_disabled_account_gets_no_link(self, patient):
        service = build_service()
        service.repository.find_by_email.return_value = patient.model_copy(update={"is_active": False})

        assert service.request_password_reset("patient@example.com") == {"message": RESET_REQUESTED_MESSAGE}
        service.repository.set_reset_token.assert_not_called()

    def test_email_is_queued_when_running_in_a_request(self, patient):
        background_tasks = MagicMock()
        service = build_service(background_tasks)
        service.repository.find_by_email.return_value = patient

        service.request_password_reset("patient@example.com")

        assert background_tasks.add_task.call_args[0][0] == service.email_service.send_password_reset_link
        service.email_service.send_password_reset_link.assert_not_called()


class TestResetPassword:

    def test_valid_token(self, patient):
        service = build_service()
        service.repository.find_by_reset_token.return_value = patient

        service.reset_password("a" * 64, "new-password-1")

        service.repository.find_by_reset_token.assert_called_once_with(hash_reset_token("a" * 64))
        user_id, new_hash = service.repository.reset_password.call_args[0]
        assert user_id == "patient-1"
        assert verify_password("new-password-1", new_hash)
        assert service.audit_service.log.call_args[0][0] == AuditActions.USER_PASSWORD_RESET

    def test_invalid_or_expired_token(self):
        service = build_service()
        service.repository.find_by_reset_token.return_value = None

        with pytest.raises(ValidationError, match="Invalid or expired reset token"):
            service.reset_password("stale", "new-password-1")

        service.repository.reset_password.assert_not_called()
        service.audit_service.log.assert_not_called()
