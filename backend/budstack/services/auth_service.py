"""
Auth Service - login, patient sign-up and account maintenance

Password resets e-mail a single-use link. Only the sha256 of its token is
stored, and it expires after PASSWORD_RESET_TTL_MINUTES.

Author: TM3
Date: 2025-11-04
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Mapping

from fastapi import BackgroundTasks

from budstack.core.auth import (
    TokenUser, create_access_token, hash_password, verify_password, ROLE_PATIENT,
)
from budstack.core.config import settings
from budstack.core.exceptions import (
    AuthenticationError, ConflictError, NotFoundError, ValidationError,
)
from budstack.domain.audit import AuditActions
from budstack.domain.tenant import Tenant
from budstack.domain.user import User, PatientRegistration, ProfileUpdate
from budstack.domain.webhook import WebhookEvents
from budstack.repositories.user_repository import UserRepository
from budstack.services.audit_service import AuditService
from budstack.services.email_service import EmailService
from budstack.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

RESET_TOKEN_BYTES = 32
RESET_REQUESTED_MESSAGE = "If an account exists with this email, you will receive password reset instructions."


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthService:

    def __init__(
        self,
        repository: Optional[UserRepository] = None,
        audit_service: Optional[AuditService] = None,
        webhook_service: Optional[WebhookService] = None,
        email_service: Optional[EmailService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.repository = repository or UserRepository()
        self.audit_service = audit_service or AuditService()
        self.webhook_service = webhook_service or WebhookService()
        self.email_service = email_service or EmailService()
        self.background_tasks = background_tasks

    def _token_response(self, user: User) -> Dict[str, Any]:
        token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
            name=user.name,
        )
        return {
            'access_token': token,
            'token_type': 'bearer',
            'expires_in': settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            'user': user.to_dict(),
        }

    def login(self, email: str, password: str, headers: Mapping[str, str] = None) -> Dict[str, Any]:
        """
        Raises:
            AuthenticationError: unknown e-mail, wrong password or disabled account
        """
        user = self.repository.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        self.audit_service.log(
            AuditActions.USER_LOGIN, 'User', user.id,
            user_id=user.id, user_email=user.email, tenant_id=user.tenant_id,
            headers=headers,
        )
        return self._token_response(user)

    def register_patient(self, tenant: Tenant, data: PatientRegistration, headers: Mapping[str, str] = None) -> Dict[str, Any]:
        """Storefront sign-up; the patient belongs to the store they signed up on"""
        if self.repository.email_exists(data.email):
            raise ConflictError("Email already registered")

        user = self.repository.create(
            email=data.email,
            password_hash=hash_password(data.password),
            role=ROLE_PATIENT,
            tenant_id=tenant.id,
            name=data.name,
            phone=data.phone,
        )
        logger.info(f"Patient {user.id} registered on {tenant.subdomain}")

        self.audit_service.log(
            AuditActions.USER_SIGNUP, 'User', user.id,
            user_id=user.id, user_email=user.email, tenant_id=tenant.id,
            headers=headers,
        )
        self.webhook_service.dispatch(self.background_tasks, WebhookEvents.USER_REGISTERED, tenant.id, {
            'user_id': user.id,
            'email': user.email,
            'name': user.name,
        })
        return self._token_response(user)

    def get_profile(self, user_id: str) -> User:
        user = self.repository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: str, data: ProfileUpdate) -> User:
        user = self.repository.update_profile(user_id, data.model_dump(exclude_unset=True))
        if not user:
            raise NotFoundError("User not found")
        return user

    def change_password(self, user: TokenUser, current_password: str, new_password: str, headers: Mapping[str, str] = None) -> None:
        stored = self.get_profile(user.id)
        if not verify_password(current_password, stored.password_hash):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")

        self.repository.update_password(user.id, hash_password(new_password))
        self.audit_service.log(
            AuditActions.USER_PASSWORD_CHANGED, 'User', user.id,
            user=user, headers=headers,
        )

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def send_reset_link(self, user: User) -> None:
        """Replace any pending token of user with a fresh one and e-mail the link"""
        token = secrets.token_hex(RESET_TOKEN_BYTES)
        ttl_minutes = settings.PASSWORD_RESET_TTL_MINUTES
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
        self.repository.set_reset_token(user.id, hash_reset_token(token), expires_at)

        reset_url = f"{settings.APP_URL.rstrip('/')}/auth/reset-password/{token}"
        if self.background_tasks is not None:
            self.background_tasks.add_task(self.email_service.send_password_reset_link, user.email, reset_url, ttl_minutes)
        else:
            self.email_service.send_password_reset_link(user.email, reset_url, ttl_minutes)

    def request_password_reset(self, email: str, headers: Mapping[str, str] = None) -> Dict[str, str]:
        """Self-service reset. The answer is the same whether or not the account exists."""
        user = self.repository.find_by_email(email)
        if user is None or not user.is_active:
            logger.info(f"Password reset requested for unknown or disabled account {email}")
            return {'message': RESET_REQUESTED_MESSAGE}

        self.send_reset_link(user)
        self.audit_service.log(
            AuditActions.USER_PASSWORD_RESET_REQUESTED, 'User', user.id,
            user_id=user.id, user_email=user.email, tenant_id=user.tenant_id,
            metadata={'source': 'self_service'},
            headers=headers,
        )
        return {'message': RESET_REQUESTED_MESSAGE}

    def reset_password(self, token: str, new_password: str, headers: Mapping[str, str] = None) -> None:
        """
        Raises:
            ValidationError: unknown, spent or expired token
        """
        user = self.repository.find_by_reset_token(hash_reset_token(token))
        if user is None:
            raise ValidationError("Invalid or expired reset token")

        self.repository.reset_password(user.id, hash_password(new_password))
        logger.info(f"Password reset completed for user {user.id}")

        self.audit_service.log(
            AuditActions.USER_PASSWORD_RESET, 'User', user.id,
            user_id=user.id, user_email=user.email, tenant_id=user.tenant_id,
            metadata={'source': 'reset_link'},
            headers=headers,
        )
