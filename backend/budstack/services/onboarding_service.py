"""
Onboarding Service - public dispensary applications

An application creates an inactive tenant, its branding and a TENANT_ADMIN
account. A super admin approves it later by activating the tenant.

Author: TM3
Date: 2025-11-06
"""
import logging
from typing import Optional, Dict, Any, Mapping

from fastapi import BackgroundTasks

from budstack.core.auth import hash_password, ROLE_TENANT_ADMIN
from budstack.core.config import settings
from budstack.core.database import transaction
from budstack.core.exceptions import ConflictError, ExternalServiceError, ValidationError
from budstack.domain.audit import AuditActions
from budstack.domain.tenant import (
    OnboardingApplication, Tenant, get_preset, is_valid_subdomain, normalize_subdomain, DEFAULT_PRESET,
)
from budstack.domain.template import Template
from budstack.repositories.template_repository import TemplateRepository
from budstack.repositories.tenant_repository import TenantRepository
from budstack.repositories.user_repository import UserRepository
from budstack.services.audit_service import AuditService
from budstack.services.credentials_service import CredentialsService
from budstack.services.email_service import EmailService
from budstack.services.tenant_service import tenant_url

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

DEFAULT_TEMPLATE = {
    'name': 'HealingBuds Default',
    'description': 'Default storefront template',
    'category': 'medical',
    'author': 'BudStack',
    'tags': ['default', 'medical'],
}


class OnboardingService:

    def __init__(
        self,
        tenant_repository: Optional[TenantRepository] = None,
        user_repository: Optional[UserRepository] = None,
        template_repository: Optional[TemplateRepository] = None,
        audit_service: Optional[AuditService] = None,
        email_service: Optional[EmailService] = None,
        credentials_service: Optional[CredentialsService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.tenant_repository = tenant_repository or TenantRepository()
        self.user_repository = user_repository or UserRepository()
        self.template_repository = template_repository or TemplateRepository()
        self.audit_service = audit_service or AuditService()
        self.email_service = email_service or EmailService()
        self.credentials_service = credentials_service or CredentialsService(self.tenant_repository)
        self.background_tasks = background_tasks

    def validate(self, application: OnboardingApplication) -> str:
        """Field checks that need no database; returns the normalized subdomain"""
        missing = application.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        subdomain = normalize_subdomain(application.subdomain)
        if not is_valid_subdomain(subdomain):
            raise ValidationError(
                "Invalid subdomain format. Use 3-63 lowercase letters, numbers and hyphens"
            )

        if len(application.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        return subdomain

    async def verify_nft(self, token_id: str) -> None:
        """
        Check the licence NFT when platform credentials are configured.
        Without them the token is stored unverified for manual review.
        """
        connector = self.credentials_service.get_platform_connector()
        if connector is None:
            logger.info(f"Dr. Green credentials not configured, NFT {token_id} left for manual review")
            return

        try:
            result = await connector.verify_nft(token_id)
        except ExternalServiceError as e:
            logger.warning(f"NFT verification failed for {token_id}: {e}")
            raise ValidationError("NFT token could not be verified") from e

        data = result.get('data') if isinstance(result, dict) else None
        if isinstance(data, dict) and data.get('valid') is False:
            raise ValidationError("NFT token is not valid")

    def resolve_template(self, requested_slug: Optional[str], conn=None) -> Template:
        """Requested template, else the platform default, created if missing"""
        template = None
        if requested_slug:
            template = self.template_repository.find_by_slug(requested_slug, conn=conn)
        if template is None:
            template = self.template_repository.find_by_slug(settings.DEFAULT_TEMPLATE_SLUG, conn=conn)
        if template is None:
            logger.warning(f"Default template '{settings.DEFAULT_TEMPLATE_SLUG}' missing, creating it")
            template = self.template_repository.create(
                {**DEFAULT_TEMPLATE, 'slug': settings.DEFAULT_TEMPLATE_SLUG},
                conn=conn
            )
        return template

    async def submit_application(
        self,
        application: OnboardingApplication,
        headers: Mapping[str, str] = None
    ) -> Dict[str, Any]:
        """
        Register a dispensary

        Raises:
            ValidationError: missing fields, bad subdomain, short password, invalid NFT
            ConflictError: subdomain or e-mail already used
        """
        subdomain = self.validate(application)
        email = application.email.strip().lower()

        if self.tenant_repository.subdomain_exists(subdomain):
            raise ConflictError("Subdomain already taken")
        if self.user_repository.email_exists(email):
            raise ConflictError("Email already registered")

        await self.verify_nft(application.nft_token_id)

        with transaction() as conn:
            # Re-checked inside the transaction for concurrent sign-ups
            if self.tenant_repository.subdomain_exists(subdomain, conn=conn):
                raise ConflictError("Subdomain already taken")
            if self.user_repository.email_exists(email, conn=conn):
                raise ConflictError("Email already registered")

            template = self.resolve_template(application.template_id, conn=conn)

            tenant = self.tenant_repository.create(
                business_name=application.business_name.strip(),
                subdomain=subdomain,
                country_code=application.country_code.upper(),
                nft_token_id=application.nft_token_id,
                template_id=template.id,
                is_active=False,
                settings={
                    'contact_info': application.contact_info or {},
                    'template_preset': application.template_id or DEFAULT_PRESET,
                },
                conn=conn,
            )
            self.tenant_repository.create_branding(tenant.id, get_preset(application.template_id), conn=conn)
            admin = self.user_repository.create(
                email=email,
                password_hash=hash_password(application.password),
                role=ROLE_TENANT_ADMIN,
                tenant_id=tenant.id,
                name=application.business_name.strip(),
                conn=conn,
            )

        logger.info(f"Onboarding application received for {subdomain} ({tenant.id})")

        self._send_welcome(tenant, email)
        self.audit_service.log(
            AuditActions.TENANT_CREATED, 'Tenant', tenant.id,
            tenant_id=tenant.id,
            user_id=admin.id,
            user_email=admin.email,
            metadata={
                'business_name': tenant.business_name,
                'subdomain': tenant.subdomain,
                'source': 'onboarding',
            },
            headers=headers,
        )

        return {'message': 'Application submitted successfully', 'tenant_id': tenant.id}

    def _send_welcome(self, tenant: Tenant, email: str) -> None:
        if self.background_tasks is None:
            return
        self.background_tasks.add_task(
            self.email_service.send_tenant_welcome,
            email, tenant.business_name, tenant.subdomain, tenant_url(tenant)
        )
