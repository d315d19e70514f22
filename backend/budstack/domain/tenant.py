"""
Tenant Domain Models

A tenant is one dispensary on the platform: its storefront identity
(subdomain / custom domain), branding, template choice and approval state.

Author: TM3
Date: 2025-11-03
"""
import re
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List, Dict, Any
from datetime import datetime


# Subdomains: 3-63 chars, lowercase letters, digits, hyphens, no hyphen at either end
SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,61})[a-z0-9]$")

# Colour presets offered by the onboarding wizard
TEMPLATE_PRESETS: Dict[str, Dict[str, str]] = {
    "modern": {
        "primary_color": "#10b981",
        "secondary_color": "#059669",
        "accent_color": "#34d399",
        "font_family": "Inter",
    },
    "medical": {
        "primary_color": "#3b82f6",
        "secondary_color": "#2563eb",
        "accent_color": "#60a5fa",
        "font_family": "Inter",
    },
    "natural": {
        "primary_color": "#84cc16",
        "secondary_color": "#65a30d",
        "accent_color": "#a3e635",
        "font_family": "Inter",
    },
    "premium": {
        "primary_color": "#8b5cf6",
        "secondary_color": "#7c3aed",
        "accent_color": "#a78bfa",
        "font_family": "Inter",
    },
}
DEFAULT_PRESET = "modern"

ONBOARDING_REQUIRED_FIELDS = (
    "business_name", "email", "password", "subdomain", "nft_token_id", "country_code",
)


def normalize_subdomain(value: str) -> str:
    return (value or "").strip().lower()


def is_valid_subdomain(value: str) -> bool:
    return bool(SUBDOMAIN_PATTERN.match(value or ""))


def get_preset(name: Optional[str]) -> Dict[str, str]:
    """Branding preset for a template id; unknown ids get the modern preset"""
    return TEMPLATE_PRESETS.get(name or "", TEMPLATE_PRESETS[DEFAULT_PRESET])


class TenantBranding(BaseModel):
    """Storefront colours and typography"""

    id: Optional[str] = None
    tenant_id: Optional[str] = None
    primary_color: str = Field("#10b981", description="Primary brand colour")
    secondary_color: str = Field("#059669", description="Secondary brand colour")
    accent_color: str = Field("#34d399", description="Accent colour")
    font_family: str = Field("Inter", description="Body font family")
    logo_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Tenant(BaseModel):
    """
    Tenant domain model - one dispensary

    Fields:
        id: Tenant ID
        business_name: Display name of the dispensary
        subdomain: Unique lowercase slug, used for {slug}.budstack.to and /store/{slug}
        custom_domain: Optional custom domain pointing at the platform
        nft_token_id: Dr. Green licence NFT
        country_code: ISO country, drives catalogue currency
        is_active: Approved by a super admin and publicly reachable
        template_id: Base template the storefront is built from
        active_tenant_template_id: Customized template copy in use, if any
        settings: Free-form tenant settings (contact info, template defaults...)

        # Optional, from JOINs
        branding: Colours and fonts
        template_slug / template_name: Base template info
        admin_email: Tenant admin account
        user_count / product_count / order_count: Aggregates for admin lists
    """

    id: str = Field(..., description="Tenant ID")
    business_name: str = Field(..., description="Business name")
    subdomain: str = Field(..., description="Unique storefront slug")
    custom_domain: Optional[str] = Field(None, description="Custom domain")
    nft_token_id: Optional[str] = Field(None, description="Dr. Green NFT token id")
    country_code: str = Field("PT", description="ISO 3166-1 alpha-2 country")
    is_active: bool = Field(False, description="Approved and reachable")
    template_id: Optional[str] = Field(None, description="Base template id")
    active_tenant_template_id: Optional[str] = Field(None, description="Active customized template id")
    settings: Dict[str, Any] = Field(default_factory=dict, description="Tenant settings")

    # Never serialized
    drgreen_api_key: Optional[str] = Field(None, exclude=True)
    drgreen_secret_key: Optional[str] = Field(None, exclude=True)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    branding: Optional[TenantBranding] = None
    template_slug: Optional[str] = None
    template_name: Optional[str] = None
    admin_email: Optional[str] = None
    user_count: Optional[int] = None
    product_count: Optional[int] = None
    order_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_drgreen_credentials(self) -> bool:
        return bool(self.drgreen_api_key and self.drgreen_secret_key)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['has_drgreen_credentials'] = self.has_drgreen_credentials
        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class OnboardingApplication(BaseModel):
    """
    Payload of the public onboarding form.

    Required fields are checked by the onboarding service so the
    response is a 400 "Missing required fields" rather than a schema error.
    """
    business_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    subdomain: Optional[str] = None
    nft_token_id: Optional[str] = None
    country_code: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None
    template_id: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [name for name in ONBOARDING_REQUIRED_FIELDS if not getattr(self, name)]


class TenantCreate(BaseModel):
    """Super admin tenant creation: tenant, admin account and default branding"""
    business_name: str = Field(..., min_length=1)
    subdomain: str
    country_code: str = "PT"
    custom_domain: Optional[str] = None
    nft_token_id: Optional[str] = None
    template_id: Optional[str] = None
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8)
    admin_name: Optional[str] = None


class TenantUpdate(BaseModel):
    business_name: Optional[str] = None
    custom_domain: Optional[str] = None
    country_code: Optional[str] = None
    nft_token_id: Optional[str] = None
    is_active: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None


class BrandingUpdate(BaseModel):
    business_name: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    secondary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    accent_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class TenantBulkAction(BaseModel):
    """Body of the bulk activate/deactivate endpoints"""
    model_config = ConfigDict(populate_by_name=True)

    tenant_ids: List[str] = Field(default_factory=list, alias="tenantIds")
