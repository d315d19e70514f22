"""
Platform Service - platform-wide branding settings

Author: TM3
Date: 2025-11-15
"""
from typing import Optional, Mapping

from budstack.core.auth import TokenUser
from budstack.domain.audit import AuditActions
from budstack.domain.platform import PlatformSettings, PlatformSettingsUpdate, PLATFORM_SETTINGS_ID
from budstack.repositories.platform_repository import PlatformSettingsRepository
from budstack.services.audit_service import AuditService


class PlatformService:

    def __init__(
        self,
        repository: Optional[PlatformSettingsRepository] = None,
        audit_service: Optional[AuditService] = None
    ):
        self.repository = repository or PlatformSettingsRepository()
        self.audit_service = audit_service or AuditService()

    def get_settings(self) -> PlatformSettings:
        return self.repository.get()

    def update_settings(self, data: PlatformSettingsUpdate, user: TokenUser, headers: Mapping[str, str] = None) -> PlatformSettings:
        fields = data.model_dump(exclude_unset=True)
        updated = self.repository.upsert(fields)

        self.audit_service.log(
            AuditActions.PLATFORM_SETTINGS_UPDATED, 'PlatformSettings', PLATFORM_SETTINGS_ID,
            user=user, metadata={'fields': sorted(fields.keys())}, headers=headers,
        )
        return updated
