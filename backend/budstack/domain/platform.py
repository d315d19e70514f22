"""
Platform settings (singleton row) and settings payloads
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime


PLATFORM_SETTINGS_ID = 'platform'


class PlatformSettings(BaseModel):
    id: str = PLATFORM_SETTINGS_ID
    business_name: str = "BudStack"
    tagline: Optional[str] = None
    primary_color: str = "#10b981"
    secondary_color: str = "#059669"
    accent_color: str = "#34d399"
    font_family: str = "Inter"
    heading_font_family: Optional[str] = None
    template: Optional[str] = "modern"
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        if isinstance(data.get('updated_at'), datetime):
            data['updated_at'] = data['updated_at'].isoformat()
        return data


class PlatformSettingsUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=1)
    tagline: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    secondary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    accent_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    font_family: Optional[str] = None
    heading_font_family: Optional[str] = None
    template: Optional[str] = None
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None


class DrGreenCredentialsUpdate(BaseModel):
    """Tenant Dr. Green API credentials; the secret is encrypted before storage"""
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
