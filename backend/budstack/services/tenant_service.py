"""
Tenant Service - tenant resolution and super admin tenant management

Resolution order for an incoming storefront request:
    1. path-based /store/{slug}
    2. {slug}.{BASE_DOMAIN} (www excluded)
    3. custom domain
Only active tenants resolve.

Author: TM3
Date: 2025-11-05
"""
import math
import logging
import secrets
from typing import Optional, List, Dict, Any, Mapping

from fastapi import BackgroundTasks

from budstack.core.auth import TokenUser, hash_password, ROLE_TENANT_ADMIN
from budstack.core.config import settings
from budstack.core.database import transaction
from budstack.core.exceptions import ConflictError, NotFoundError, ValidationError
from budstack.domain.audit import AuditActions
from budstack.domain.consent import CookieSettings, CookieSettingsUpdate, consent_config
from budstack.domain.tenant import (
    Tenant, TenantCreate, TenantUpdate, BrandingUpdate,
    get_preset, is_valid_subdomain, normalize_subdomain, DEFAULT_PRESET,
)
from budstack.domain.webhook import WebhookEvents
from budstack.repositories.tenant_repository import TenantRepository
from budstack.repositories.user_repository import UserRepository
from budstack.services.audit_service import AuditService
from budstack.services.email_service import EmailService
from budstack.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ('localhost', '127.0.0.1')


def _strip_port(host: str) -> str:
    return (host or '').split(':')[0].strip().lower()


def slug_from_path(path: str) -> Optional[str]:
    """'/store/healingbuds/products' -> 'healingbuds'"""
    parts = [part for part in (path or '').split('/') if part]
    if len(parts) >= 2 and parts[0] == 'store':
        return parts[1]
    return None


def subdomain_from_host(host: str, base_domain: str = None) -> Optional[str]:
    """'shop.budstack.to' -> 'shop'; None for the apex, www and foreign hosts"""
    hostname = _strip_port(host)
    base_domain = (base_domain or settings.BASE_DOMAIN).lower()
    suffix = f".{base_domain}"
    if not hostname.endswith(suffix):
        return None
    subdomain = hostname[:-len(suffix)]
    if not subdomain or subdomain == 'www' or '.' in subdomain:
        return None
    return subdomain


def is_custom_domain_host(host: str, base_domain: str = None) -> bool:
    hostname = _strip_port(host)
    base_domain = (base_domain or settings.BASE_DOMAIN).lower()
    if not hostname or hostname in LOCAL_HOSTS:
        return False
    return hostname != base_domain and not hostname.endswith(f".{base_domain}")


def tenant_url(tenant: Tenant) -> str:
    if tenant.custom_domain:
        return f"https://{tenant.custom_domain}"
    return f"https://{settings.BASE_DOMAIN}/store/{tenant.subdomain}"


def generate_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]


class TenantService:
    """
    Service for tenant lookups and lifecycle

    Handles:
    - Storefront resolution (path, subdomain, custom domain)
    - Super admin CRUD, activation and bulk activation
    - Tenant admin password resets
    - Branding and settings updates
    - Cookie consent settings
    """

    def __init__(
        self,
        repository: Optional[TenantRepository] = None,
        user_repository: Optional[UserRepository] = None,
        audit_service: Optional[AuditService] = None,
        webhook_service: Optional[WebhookService] = None,
        email_service: Optional[EmailService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.repository = repository or TenantRepository()
        self.user_repository = user_repository or UserRepository()
        self.audit_service = audit_service or AuditService()
        self.webhook_service = webhook_service or WebhookService()
        self.email_service = email_service or EmailService()
        self.background_tasks = background_tasks

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_tenant(self, host: str, path: str = '/') -> Optional[Tenant]:
        slug = slug_from_path(path)
        if slug:
            return self.get_by_slug(slug)

        subdomain = subdomain_from_host(host)
        if subdomain:
            return self.repository.find_by_subdomain(subdomain, active_only=True)

        if is_custom_domain_host(host):
            return self.repository.find_by_custom_domain(_strip_port(host), active_only=True)

        return None

    def get_by_slug(self, slug: str) -> Optional[Tenant]:
        """Active tenant by subdomain, retrying lowercased"""
        tenant = self.repository.find_by_subdomain(slug, active_only=True)
        if tenant is None and slug != slug.lower():
            tenant = self.repository.find_by_subdomain(slug.lower(), active_only=True)
        return tenant

    def require_by_slug(self, slug: str) -> Tenant:
        tenant = self.get_by_slug(slug)
        if not tenant:
            raise NotFoundError("Store not found")
        return tenant

    # ------------------------------------------------------------------
    # Super admin
    # ------------------------------------------------------------------

    def list(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        country_code: Optional[str] = None
    ) -> Dict[str, Any]:
        tenants, total = self.repository.find_all(
            search=search,
            status=status,
            country_code=country_code,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return {
            'tenants': tenants,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'totalPages': math.ceil(total / limit) if limit else 0,
            },
        }

    def get(self, tenant_id: str) -> Tenant:
        tenant = self.repository.find_by_id(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant

    def create(self, data: TenantCreate, user: TokenUser, headers: Mapping[str, str] = None) -> Tenant:
        """Tenant, its admin account and default branding, in one transaction"""
        subdomain = normalize_subdomain(data.subdomain)
        if not is_valid_subdomain(subdomain):
            raise ValidationError("Invalid subdomain format")

        with transaction() as conn:
            if self.repository.subdomain_exists(subdomain, conn=conn):
                raise ConflictError("Subdomain already taken")
            if self.user_repository.email_exists(data.admin_email, conn=conn):
                raise ConflictError("Email already registered")

            tenant = self.repository.create(
                business_name=data.business_name,
                subdomain=subdomain,
                country_code=data.country_code.upper(),
                nft_token_id=data.nft_token_id,
                custom_domain=data.custom_domain,
                template_id=data.template_id,
                is_active=True,
                conn=conn,
            )
            self.repository.create_branding(tenant.id, get_preset(DEFAULT_PRESET), conn=conn)
            self.user_repository.create(
                email=data.admin_email,
                password_hash=hash_password(data.admin_password),
                role=ROLE_TENANT_ADMIN,
                tenant_id=tenant.id,
                name=data.admin_name,
                conn=conn,
            )

        logger.info(f"Created tenant {tenant.subdomain} ({tenant.id})")

        self.audit_service.log(
            AuditActions.TENANT_CREATED, 'Tenant', tenant.id,
            user=user, tenant_id=tenant.id,
            metadata={'business_name': tenant.business_name, 'subdomain': tenant.subdomain},
            headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, WebhookEvents.TENANT_CREATED, tenant.id,
            {'tenant_id': tenant.id, 'business_name': tenant.business_name, 'subdomain': tenant.subdomain},
        )
        return self.repository.find_by_id(tenant.id) or tenant

    def update(self, tenant_id: str, data: TenantUpdate, user: TokenUser, headers: Mapping[str, str] = None) -> Tenant:
        existing = self.get(tenant_id)
        fields = data.model_dump(exclude_unset=True)

        if 'country_code' in fields and fields['country_code']:
            fields['country_code'] = fields['country_code'].upper()
        if 'custom_domain' in fields and fields['custom_domain']:
            fields['custom_domain'] = fields['custom_domain'].strip().lower()
        if 'settings' in fields:
            fields['settings'] = {**existing.settings, **(fields['settings'] or {})}

        tenant = self.repository.update(tenant_id, fields)

        self.audit_service.log(
            AuditActions.TENANT_UPDATED, 'Tenant', tenant_id,
            user=user, tenant_id=tenant_id,
            metadata={'fields': sorted(fields.keys())},
            headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, WebhookEvents.TENANT_UPDATED, tenant_id,
            {'tenant_id': tenant_id, 'fields': sorted(fields.keys())},
        )
        if 'is_active' in fields and fields['is_active'] != existing.is_active:
            self._status_changed(tenant, existing.is_active, user, headers)
        return tenant

    def toggle_active(self, tenant_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> Tenant:
        tenant = self.get(tenant_id)
        new_status = not tenant.is_active
        self.repository.set_active(tenant_id, new_status)
        tenant = tenant.model_copy(update={'is_active': new_status})

        self._status_changed(tenant, not new_status, user, headers)
        return tenant

    def _status_changed(self, tenant: Tenant, previous: bool, user: TokenUser, headers) -> None:
        action = AuditActions.TENANT_ACTIVATED if tenant.is_active else AuditActions.TENANT_DEACTIVATED
        event = WebhookEvents.TENANT_ACTIVATED if tenant.is_active else WebhookEvents.TENANT_DEACTIVATED

        logger.info(f"Tenant {tenant.subdomain} is now {'active' if tenant.is_active else 'inactive'}")

        self.audit_service.log(
            action, 'Tenant', tenant.id,
            user=user, tenant_id=tenant.id,
            metadata={
                'business_name': tenant.business_name,
                'previous_status': previous,
                'new_status': tenant.is_active,
            },
            headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, event, tenant.id,
            {'tenant_id': tenant.id, 'business_name': tenant.business_name, 'is_active': tenant.is_active},
        )

    def bulk_set_active(
        self,
        tenant_ids: List[str],
        is_active: bool,
        user: TokenUser,
        headers: Mapping[str, str] = None
    ) -> List[str]:
        """
        Activate or deactivate several tenants

        Only tenants whose status changes are audited and announced.

        Raises:
            ValidationError: empty id list
            NotFoundError: none of the ids exist
        """
        if not tenant_ids:
            raise ValidationError("tenantIds must be a non-empty list")

        updated_ids = self.repository.bulk_set_active(tenant_ids, is_active)
        if not updated_ids:
            if not self.repository.find_by_ids(tenant_ids):
                raise NotFoundError("No valid tenants found")
            return []

        action = AuditActions.TENANT_BULK_ACTIVATED if is_active else AuditActions.TENANT_BULK_DEACTIVATED
        event = WebhookEvents.TENANT_ACTIVATED if is_active else WebhookEvents.TENANT_DEACTIVATED

        self.audit_service.log(
            action, 'Tenant', None,
            user=user,
            metadata={'tenant_ids': updated_ids, 'count': len(updated_ids)},
            headers=headers,
        )
        for tenant_id in updated_ids:
            self.webhook_service.dispatch(
                self.background_tasks, event, tenant_id,
                {'tenant_id': tenant_id, 'is_active': is_active},
            )
        return updated_ids

    def reset_admin_password(
        self,
        tenant_id: str,
        user: TokenUser,
        new_password: Optional[str] = None,
        headers: Mapping[str, str] = None
    ) -> Dict[str, Any]:
        """
        Set a new password for the tenant's admin account and e-mail it.

        Returns the admin e-mail, and the generated password when none was given.
        """
        tenant = self.get(tenant_id)
        admin = self.user_repository.find_tenant_admin(tenant_id)
        if not admin:
            raise NotFoundError("Tenant admin not found")

        generated = new_password is None
        password = new_password or generate_password()
        self.user_repository.update_password(admin.id, hash_password(password))

        self.audit_service.log(
            AuditActions.USER_PASSWORD_RESET, 'User', admin.id,
            user=user, tenant_id=tenant_id,
            metadata={'email': admin.email, 'generated': generated},
            headers=headers,
        )
        if self.background_tasks is not None:
            self.background_tasks.add_task(
                self.email_service.send_password_reset, admin.email, password, f"{tenant_url(tenant)}/login"
            )

        result = {'email': admin.email}
        if generated:
            result['password'] = password
        return result

    # ------------------------------------------------------------------
    # Tenant admin
    # ------------------------------------------------------------------

    def update_branding(self, tenant_id: str, data: BrandingUpdate, user: TokenUser, headers: Mapping[str, str] = None) -> Tenant:
        tenant = self.get(tenant_id)
        fields = data.model_dump(exclude_unset=True)

        tenant_fields = {}
        if fields.get('business_name'):
            tenant_fields['business_name'] = fields.pop('business_name')
        if 'settings' in fields:
            tenant_fields['settings'] = {**tenant.settings, **(fields.pop('settings') or {})}
        if tenant_fields:
            self.repository.update(tenant_id, tenant_fields)

        branding_fields = {key: value for key, value in fields.items() if value is not None}
        if branding_fields:
            if tenant.branding is None:
                self.repository.create_branding(tenant_id, {**get_preset(DEFAULT_PRESET), **branding_fields})
            else:
                self.repository.update_branding(tenant_id, branding_fields)

        self.audit_service.log(
            AuditActions.BRANDING_UPDATED, 'Tenant', tenant_id,
            user=user, tenant_id=tenant_id,
            metadata={'fields': sorted(list(tenant_fields.keys()) + list(branding_fields.keys()))},
            headers=headers,
        )
        return self.get(tenant_id)

    # ------------------------------------------------------------------
    # Cookie consent
    # ------------------------------------------------------------------

    def get_cookie_settings(self, tenant_id: str) -> CookieSettings:
        return CookieSettings.from_tenant_settings(self.get(tenant_id).settings)

    def update_cookie_settings(
        self,
        tenant_id: str,
        data: CookieSettingsUpdate,
        user: TokenUser,
        headers: Mapping[str, str] = None
    ) -> CookieSettings:
        tenant = self.get(tenant_id)
        changes = data.model_dump(exclude_none=True, by_alias=True)
        merged = CookieSettings.from_tenant_settings({**tenant.settings, **changes})

        self.repository.update(tenant_id, {'settings': {**tenant.settings, **merged.to_settings()}})
        self.audit_service.log(
            AuditActions.COOKIE_SETTINGS_UPDATED, 'Tenant', tenant_id,
            user=user, tenant_id=tenant_id,
            metadata={'fields': sorted(changes.keys())},
            headers=headers,
        )
        return merged

    def cookie_consent(self, tenant: Tenant, country_code: Optional[str] = None) -> Dict[str, Any]:
        """Banner config for a visitor; falls back to the store's own country"""
        return consent_config(
            country_code or tenant.country_code,
            CookieSettings.from_tenant_settings(tenant.settings),
        )
