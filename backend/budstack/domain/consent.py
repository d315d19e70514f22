"""
Cookie Consent Domain Models

The consent model a storefront shows depends on the visitor's country:
- opt-in (GDPR, UK GDPR, POPIA and similar laws): nothing but essential
  cookies until the visitor accepts
- opt-out (everywhere else): cookies on by default, the visitor may refuse

Tenants tune the banner through CookieSettings stored in tenant.settings.

Author: TM3
Date: 2025-11-21
"""
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, ConfigDict


EU_COUNTRIES = frozenset({
    'AT', 'BE', 'BG', 'HR', 'CY', 'CZ', 'DK', 'EE', 'FI', 'FR', 'DE', 'GR', 'HU', 'IE',
    'IT', 'LV', 'LT', 'LU', 'MT', 'NL', 'PL', 'PT', 'RO', 'SK', 'SI', 'ES', 'SE',
})
UK_COUNTRIES = frozenset({'GB', 'UK'})
# Outside the EU but with GDPR-style consent rules (ZA is POPIA)
GDPR_LIKE_COUNTRIES = frozenset({'ZA', 'BR', 'CH', 'NO', 'IS', 'LI'})

OPT_IN = 'opt-in'
OPT_OUT = 'opt-out'

COOKIE_CATEGORIES = ('essential', 'analytics', 'marketing', 'preferences')

BANNER_TEXT = {
    OPT_IN: {
        'title': 'Cookie Consent',
        'accept': 'Accept All',
        'reject': 'Reject All',
        'customize': 'Customize',
    },
    OPT_OUT: {
        'title': 'Cookie Notice',
        'accept': 'Got it',
        'reject': 'Opt out',
        'customize': 'Manage Cookies',
    },
}


def _normalize(country_code: Optional[str]) -> Optional[str]:
    if not country_code or not country_code.strip():
        return None
    return country_code.strip().upper()


def get_consent_model(country_code: Optional[str]) -> str:
    """Unknown countries get the strict opt-in model"""
    code = _normalize(country_code)
    if code is None:
        return OPT_IN
    if code in EU_COUNTRIES or code in UK_COUNTRIES or code in GDPR_LIKE_COUNTRIES:
        return OPT_IN
    return OPT_OUT


def is_gdpr_region(country_code: Optional[str]) -> bool:
    code = _normalize(country_code)
    return code is None or code in EU_COUNTRIES or code in UK_COUNTRIES


def is_popia_region(country_code: Optional[str]) -> bool:
    return _normalize(country_code) == 'ZA'


def banner_text(model: str) -> Dict[str, str]:
    return dict(BANNER_TEXT[model])


def default_categories(model: str) -> Dict[str, bool]:
    """Essential cookies are always on; the rest start on only under opt-out"""
    enabled = model == OPT_OUT
    return {category: category == 'essential' or enabled for category in COOKIE_CATEGORIES}


class CookieSettings(BaseModel):
    """Per-tenant banner settings, stored camelCase in tenant.settings"""

    cookie_consent_enabled: bool = Field(True, alias="cookieConsentEnabled")
    cookie_banner_message: str = Field("", alias="cookieBannerMessage", max_length=1000)
    cookie_policy_url: str = Field("", alias="cookiePolicyUrl", max_length=500)
    analytics_enabled: bool = Field(False, alias="analyticsEnabled")
    marketing_cookies_enabled: bool = Field(False, alias="marketingCookiesEnabled")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_tenant_settings(cls, settings: Optional[Dict[str, Any]]) -> "CookieSettings":
        settings = settings or {}
        known = {field.alias: settings[field.alias] for field in cls.model_fields.values() if field.alias in settings}
        return cls.model_validate(known)

    def to_settings(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class CookieSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value"""

    cookie_consent_enabled: Optional[bool] = Field(None, alias="cookieConsentEnabled")
    cookie_banner_message: Optional[str] = Field(None, alias="cookieBannerMessage", max_length=1000)
    cookie_policy_url: Optional[str] = Field(None, alias="cookiePolicyUrl", max_length=500)
    analytics_enabled: Optional[bool] = Field(None, alias="analyticsEnabled")
    marketing_cookies_enabled: Optional[bool] = Field(None, alias="marketingCookiesEnabled")

    model_config = ConfigDict(populate_by_name=True)


def consent_config(country_code: Optional[str], cookie_settings: CookieSettings) -> Dict[str, Any]:
    """What a storefront needs to render its banner"""
    model = get_consent_model(country_code)
    return {
        'country_code': _normalize(country_code),
        'model': model,
        'is_gdpr': is_gdpr_region(country_code),
        'is_popia': is_popia_region(country_code),
        'banner': banner_text(model),
        'default_categories': default_categories(model),
        'settings': cookie_settings.to_settings(),
    }
