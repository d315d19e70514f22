"""
Template Domain Models

Base storefront templates (managed by super admins) and the customized copies
tenants clone from them.

Author: TM3
Date: 2025-11-10
"""
import re
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime


GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/([\w-]+)/([\w-]+)(\.git)?$")

DRAFT_TTL_HOURS = 24

# Image settings kept across template switches when the tenant uploaded them
IMAGE_SETTING_KEYS = ('logoPath', 'heroImagePath')


def slugify(name: str) -> str:
    """'Healing Buds v2!' -> 'healing-buds-v2'"""
    slug = (name or '').lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def is_custom_upload(path: Optional[str]) -> bool:
    """True for tenant uploads, False for assets bundled with a template"""
    if not path:
        return False
    return "uploads/" in path or not path.startswith("/templates/")


def parse_github_url(url: str) -> Optional[tuple]:
    """(owner, repo) for a GitHub repository URL, None if it doesn't match"""
    match = GITHUB_URL_PATTERN.match((url or '').strip())
    if not match:
        return None
    return match.group(1), match.group(2)


class Template(BaseModel):
    """
    Base template

    defaults holds the template's defaults.json: design tokens, page copy and
    asset paths merged into a tenant's settings when the template is selected.
    """

    id: str = Field(..., description="Template ID")
    name: str = Field(..., description="Display name")
    slug: str = Field(..., description="Unique slug")
    description: Optional[str] = None
    category: Optional[str] = None
    version: Optional[str] = "1.0.0"
    author: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    preview_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    github_url: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    defaults: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class TenantTemplate(BaseModel):
    id: str
    tenant_id: str
    base_template_id: str
    template_name: str
    design_system: Dict[str, Any] = Field(default_factory=dict)
    page_content: Dict[str, Any] = Field(default_factory=dict)
    navigation: Dict[str, Any] = Field(default_factory=dict)
    footer: Dict[str, Any] = Field(default_factory=dict)
    custom_css: Optional[str] = None
    logo_url: Optional[str] = None
    hero_image_url: Optional[str] = None
    favicon_url: Optional[str] = None
    is_draft: bool = False
    expires_at: Optional[datetime] = None
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From JOIN
    base_template_slug: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ['expires_at', 'created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class SelectTemplateRequest(BaseModel):
    template_id: str


class CloneTemplateRequest(BaseModel):
    base_template_slug: str
    is_draft: bool = False
    custom_name: Optional[str] = None


class TenantTemplateUpdate(BaseModel):
    template_name: Optional[str] = None
    design_system: Optional[Dict[str, Any]] = None
    page_content: Optional[Dict[str, Any]] = None
    navigation: Optional[Dict[str, Any]] = None
    footer: Optional[Dict[str, Any]] = None
    custom_css: Optional[str] = None
    logo_url: Optional[str] = None
    hero_image_url: Optional[str] = None
    favicon_url: Optional[str] = None


class TemplateUpload(BaseModel):
    github_url: str
    template_name: str
    description: Optional[str] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    preview_url: Optional[str] = None
