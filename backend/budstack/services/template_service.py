"""
Template Service - storefront templates

Handles:
- Resolving which template and settings a storefront renders with
- Tenant template selection, cloning (drafts), activation and editing
- Super admin template management and GitHub uploads

Author: TM3
Date: 2025-11-10
"""
import io
import json
import logging
import zipfile
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Mapping

import httpx

from budstack.core.auth import TokenUser
from budstack.core.config import settings
from budstack.core.database import transaction
from budstack.core.exceptions import (
    ConflictError, ExternalServiceError, NotFoundError, ValidationError,
)
from budstack.domain.audit import AuditActions
from budstack.domain.template import (
    Template, TenantTemplate, TemplateUpload, TemplateUpdate, TenantTemplateUpdate,
    DRAFT_TTL_HOURS, IMAGE_SETTING_KEYS, is_custom_upload, parse_github_url, slugify,
)
from budstack.domain.tenant import Tenant
from budstack.repositories.template_repository import TemplateRepository
from budstack.repositories.tenant_repository import TenantRepository
from budstack.services.audit_service import AuditService

logger = logging.getLogger(__name__)

CONFIG_FILENAME = 'template.config.json'
DEFAULTS_FILENAME = 'defaults.json'
ARCHIVE_BRANCHES = ('main', 'master')

# defaults.json section -> tenant template column
CLONE_SECTIONS = {
    'designSystem': 'design_system',
    'pageContent': 'page_content',
    'navigation': 'navigation',
    'footer': 'footer',
}


def merge_template_settings(defaults: Dict[str, Any], current: Dict[str, Any]) -> Dict[str, Any]:
    """
    New tenant settings when switching to a template: the template defaults,
    except logo/hero paths the tenant uploaded themselves.
    """
    merged = dict(defaults or {})
    for key in IMAGE_SETTING_KEYS:
        if is_custom_upload((current or {}).get(key)):
            merged[key] = current[key]
    return merged


def read_template_archive(content: bytes, repo: str) -> Dict[str, Any]:
    """
    Extract config and defaults from a GitHub zipball

    GitHub archives hold everything under a single '{repo}-{branch}/' folder.

    Returns:
        {'config': dict, 'defaults': dict}
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as e:
        raise ValidationError("Downloaded archive is not a valid zip file") from e

    with archive:
        names = archive.namelist()
        root = next(
            (name.split('/')[0] for name in names if name.split('/')[0].startswith(f"{repo}-")),
            None
        )
        if root is None:
            raise ValidationError("Unexpected archive layout")

        def read_json(filename: str) -> Optional[Dict[str, Any]]:
            path = f"{root}/{filename}"
            if path not in names:
                return None
            try:
                return json.loads(archive.read(path).decode('utf-8'))
            except (ValueError, UnicodeDecodeError) as e:
                raise ValidationError(f"{filename} is not valid JSON") from e

        config = read_json(CONFIG_FILENAME)
        if config is None:
            raise ValidationError(f"{CONFIG_FILENAME} not found in repository root")

        return {'config': config, 'defaults': read_json(DEFAULTS_FILENAME) or {}}


class TemplateService:

    def __init__(
        self,
        repository: Optional[TemplateRepository] = None,
        tenant_repository: Optional[TenantRepository] = None,
        audit_service: Optional[AuditService] = None
    ):
        self.repository = repository or TemplateRepository()
        self.tenant_repository = tenant_repository or TenantRepository()
        self.audit_service = audit_service or AuditService()

    # ------------------------------------------------------------------
    # Storefront
    # ------------------------------------------------------------------

    def resolve_storefront(self, tenant: Tenant) -> Dict[str, Any]:
        """
        Template slug, merged settings and branding for a storefront

        Priority: active tenant template, then the tenant's base template,
        then the platform default.
        """
        tenant_template = None
        if tenant.active_tenant_template_id:
            tenant_template = self.repository.find_tenant_template(tenant.active_tenant_template_id)
            if tenant_template and (not tenant_template.is_active or tenant_template.tenant_id != tenant.id):
                tenant_template = None

        base_template = None
        if tenant_template:
            base_template = self.repository.find_by_id(tenant_template.base_template_id)
        if base_template is None and tenant.template_id:
            base_template = self.repository.find_by_id(tenant.template_id)
        if base_template is None:
            base_template = self.repository.find_by_slug(settings.DEFAULT_TEMPLATE_SLUG)

        defaults = base_template.defaults if base_template else {}
        merged_settings = {**defaults, **tenant.settings}

        return {
            'tenant_id': tenant.id,
            'business_name': tenant.business_name,
            'template_slug': base_template.slug if base_template else settings.DEFAULT_TEMPLATE_SLUG,
            'settings': merged_settings,
            'branding': tenant.branding.model_dump() if tenant.branding else None,
            'tenant_template': tenant_template.to_dict() if tenant_template else None,
        }

    # ------------------------------------------------------------------
    # Tenant admin
    # ------------------------------------------------------------------

    def list_available(self) -> List[Template]:
        return self.repository.find_all(active_only=True)

    def list_tenant_templates(self, tenant_id: str) -> List[TenantTemplate]:
        return self.repository.find_tenant_templates(tenant_id)

    def select_template(self, tenant: Tenant, template_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> Dict[str, Any]:
        template = self.repository.find_by_id(template_id)
        if not template or not template.is_active:
            raise NotFoundError("Template not found")

        new_settings = merge_template_settings(template.defaults, tenant.settings)

        with transaction() as conn:
            self.tenant_repository.set_template(tenant.id, template.id, new_settings, conn=conn)
            self.tenant_repository.set_active_tenant_template(tenant.id, None, conn=conn)
            self.repository.deactivate_tenant_templates(tenant.id, conn=conn)
            self.repository.increment_usage(template.id, conn=conn)

        self.audit_service.log(
            AuditActions.TEMPLATE_CHANGED, 'Tenant', tenant.id,
            user=user, tenant_id=tenant.id,
            metadata={
                'previous_template_id': tenant.template_id,
                'template_id': template.id,
                'template_slug': template.slug,
            },
            headers=headers,
        )
        return {'template': template, 'settings': new_settings}

    def clone_template(
        self,
        tenant: Tenant,
        base_template_slug: str,
        user: TokenUser,
        is_draft: bool = False,
        custom_name: Optional[str] = None,
        headers: Mapping[str, str] = None
    ) -> TenantTemplate:
        """
        Copy a base template into an editable tenant template.

        Drafts expire after DRAFT_TTL_HOURS and are not activated; a
        non-draft copy becomes the tenant's only active template.
        """
        base = self.repository.find_by_slug(base_template_slug)
        if not base or not base.is_active:
            raise NotFoundError("Base template not found")

        defaults = base.defaults or {}
        content = {column: defaults.get(section) or {} for section, column in CLONE_SECTIONS.items()}
        content['custom_css'] = defaults.get('customCss')
        content['logo_url'] = tenant.settings.get('logoPath') or defaults.get('logoPath')
        content['hero_image_url'] = tenant.settings.get('heroImagePath') or defaults.get('heroImagePath')
        content['favicon_url'] = defaults.get('faviconPath')

        expires_at = datetime.now(timezone.utc) + timedelta(hours=DRAFT_TTL_HOURS) if is_draft else None

        with transaction() as conn:
            if not is_draft:
                self.repository.deactivate_tenant_templates(tenant.id, conn=conn)

            tenant_template = self.repository.create_tenant_template(
                tenant_id=tenant.id,
                base_template_id=base.id,
                template_name=custom_name or f"{base.name} (Custom)",
                content=content,
                is_draft=is_draft,
                expires_at=expires_at,
                is_active=not is_draft,
                conn=conn,
            )

            if not is_draft:
                self.tenant_repository.set_active_tenant_template(tenant.id, tenant_template.id, conn=conn)
            self.repository.increment_usage(base.id, conn=conn)

        self.audit_service.log(
            AuditActions.TEMPLATE_CREATED, 'TenantTemplate', tenant_template.id,
            user=user, tenant_id=tenant.id,
            metadata={'base_template': base.slug, 'is_draft': is_draft},
            headers=headers,
        )
        return tenant_template

    def _owned_template(self, tenant: Tenant, tenant_template_id: str) -> TenantTemplate:
        tenant_template = self.repository.find_tenant_template(tenant_template_id)
        if not tenant_template or tenant_template.tenant_id != tenant.id:
            raise NotFoundError("Template not found")
        return tenant_template

    def activate_tenant_template(self, tenant: Tenant, tenant_template_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> TenantTemplate:
        tenant_template = self._owned_template(tenant, tenant_template_id)

        with transaction() as conn:
            self.repository.deactivate_tenant_templates(tenant.id, conn=conn)
            self.repository.activate_tenant_template(tenant_template.id, conn=conn)
            self.tenant_repository.set_active_tenant_template(tenant.id, tenant_template.id, conn=conn)

        self.audit_service.log(
            AuditActions.TEMPLATE_CHANGED, 'TenantTemplate', tenant_template.id,
            user=user, tenant_id=tenant.id,
            metadata={'template_name': tenant_template.template_name},
            headers=headers,
        )
        return self.repository.find_tenant_template(tenant_template.id)

    def update_tenant_template(
        self,
        tenant: Tenant,
        tenant_template_id: str,
        data: TenantTemplateUpdate,
        user: TokenUser,
        headers: Mapping[str, str] = None
    ) -> TenantTemplate:
        self._owned_template(tenant, tenant_template_id)
        fields = data.model_dump(exclude_unset=True)
        tenant_template = self.repository.update_tenant_template(tenant_template_id, fields)

        self.audit_service.log(
            AuditActions.TEMPLATE_UPDATED, 'TenantTemplate', tenant_template_id,
            user=user, tenant_id=tenant.id,
            metadata={'fields': sorted(fields.keys())},
            headers=headers,
        )
        return tenant_template

    def delete_tenant_template(self, tenant: Tenant, tenant_template_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> None:
        tenant_template = self._owned_template(tenant, tenant_template_id)
        if tenant_template.is_active or tenant.active_tenant_template_id == tenant_template.id:
            raise ValidationError("Cannot delete the active template")

        self.repository.delete_tenant_template(tenant_template.id)
        self.audit_service.log(
            AuditActions.TEMPLATE_DELETED, 'TenantTemplate', tenant_template.id,
            user=user, tenant_id=tenant.id,
            metadata={'template_name': tenant_template.template_name},
            headers=headers,
        )

    def cleanup_expired_drafts(self, now: Optional[datetime] = None) -> int:
        deleted = self.repository.delete_expired_drafts(now or datetime.now(timezone.utc))
        if deleted:
            logger.info(f"Deleted {deleted} expired template drafts")
        return deleted

    # ------------------------------------------------------------------
    # Super admin
    # ------------------------------------------------------------------

    def list_all(self) -> List[Template]:
        return self.repository.find_all()

    def update(self, template_id: str, data: TemplateUpdate, user: TokenUser, headers: Mapping[str, str] = None) -> Template:
        fields = data.model_dump(exclude_unset=True)
        template = self.repository.update(template_id, fields)
        if not template:
            raise NotFoundError("Template not found")

        self.audit_service.log(
            AuditActions.TEMPLATE_UPDATED, 'Template', template_id,
            user=user, metadata={'fields': sorted(fields.keys())}, headers=headers,
        )
        return template

    def delete(self, template_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> None:
        template = self.repository.find_by_id(template_id)
        if not template:
            raise NotFoundError("Template not found")

        in_use = self.tenant_repository.count_using_template(template_id)
        if in_use:
            raise ConflictError(f"Template is used by {in_use} tenant(s)")

        self.repository.delete(template_id)
        self.audit_service.log(
            AuditActions.TEMPLATE_DELETED, 'Template', template_id,
            user=user, metadata={'slug': template.slug}, headers=headers,
        )

    async def download_archive(self, owner: str, repo: str) -> bytes:
        """Zipball of the main branch, falling back to master"""
        async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as client:
            for branch in ARCHIVE_BRANCHES:
                url = f"https://github.com/{owner}/{repo}/archive/refs/heads/{branch}.zip"
                try:
                    response = await client.get(url)
                except httpx.HTTPError as e:
                    raise ExternalServiceError(f"Failed to download repository: {e}") from e

                if response.status_code == 200:
                    logger.info(f"Downloaded {owner}/{repo}@{branch}")
                    return response.content
                logger.debug(f"No archive for {owner}/{repo}@{branch} ({response.status_code})")

        raise ValidationError("Failed to download repository. Make sure it is public and has a main or master branch")

    async def upload_from_github(self, data: TemplateUpload, user: TokenUser, headers: Mapping[str, str] = None) -> Template:
        """
        Register a base template from a public GitHub repository

        Raises:
            ValidationError: bad URL or name, missing template.config.json
            ConflictError: a template with the same slug exists
        """
        parsed = parse_github_url(data.github_url)
        if not parsed:
            raise ValidationError("Invalid GitHub URL. Expected https://github.com/{owner}/{repo}")
        owner, repo = parsed

        slug = slugify(data.template_name)
        if not slug:
            raise ValidationError("Template name must contain letters or numbers")
        if self.repository.find_by_slug(slug):
            raise ConflictError(f"Template with slug '{slug}' already exists")

        content = await self.download_archive(owner, repo)
        extracted = read_template_archive(content, repo)
        config = extracted['config']

        template = self.repository.create({
            'name': data.template_name,
            'slug': slug,
            'description': data.description or config.get('description'),
            'category': config.get('category'),
            'version': config.get('version', '1.0.0'),
            'author': config.get('author'),
            'tags': config.get('tags') or [],
            'preview_url': config.get('previewUrl'),
            'thumbnail_url': config.get('thumbnailUrl'),
            'github_url': data.github_url,
            'config': config,
            'defaults': extracted['defaults'],
        })

        logger.info(f"Uploaded template {slug} from {owner}/{repo}")
        self.audit_service.log(
            AuditActions.TEMPLATE_CREATED, 'Template', template.id,
            user=user, metadata={'slug': slug, 'github_url': data.github_url}, headers=headers,
        )
        return template
