"""
Credentials Service - tenant Dr. Green API credentials

The API key is stored as-is, the private key is encrypted at rest
(AES-256-GCM, see core.encryption). Connectors are only ever built from
decrypted credentials returned here.

Author: TM3
Date: 2025-11-07
"""
import logging
from dataclasses import dataclass
from typing import Optional

from budstack.core import encryption
from budstack.core.config import settings
from budstack.core.exceptions import MissingCredentialsError, NotFoundError
from budstack.connectors.drgreen_connector import DrGreenConnector
from budstack.domain.tenant import Tenant
from budstack.repositories.tenant_repository import TenantRepository

logger = logging.getLogger(__name__)


@dataclass
class DrGreenConfig:
    api_key: str
    secret_key: str


class CredentialsService:
    """Service for reading and storing tenant API credentials"""

    def __init__(self, tenant_repository: Optional[TenantRepository] = None):
        self.tenant_repository = tenant_repository or TenantRepository()

    def get_tenant_config(self, tenant: Tenant) -> DrGreenConfig:
        """
        Decrypted Dr. Green credentials of a tenant

        Raises:
            MissingCredentialsError: tenant has no (usable) credentials
        """
        if not tenant.has_drgreen_credentials:
            raise MissingCredentialsError(
                "Dr. Green API credentials are not configured for this store"
            )

        try:
            secret_key = encryption.decrypt(tenant.drgreen_secret_key)
        except encryption.EncryptionError as e:
            logger.error(f"Could not decrypt Dr. Green secret for tenant {tenant.id}: {e}")
            raise MissingCredentialsError("Stored Dr. Green credentials could not be decrypted") from e

        return DrGreenConfig(api_key=tenant.drgreen_api_key, secret_key=secret_key)

    def get_connector(self, tenant: Tenant) -> DrGreenConnector:
        config = self.get_tenant_config(tenant)
        return DrGreenConnector(api_key=config.api_key, secret_key=config.secret_key)

    def get_platform_connector(self) -> Optional[DrGreenConnector]:
        """Platform-level connector (NFT checks during onboarding), None if unset"""
        if not settings.DRGREEN_API_KEY or not settings.DRGREEN_SECRET_KEY:
            return None
        return DrGreenConnector(api_key=settings.DRGREEN_API_KEY, secret_key=settings.DRGREEN_SECRET_KEY)

    def save_tenant_credentials(self, tenant_id: str, api_key: Optional[str], secret_key: Optional[str]) -> None:
        """Store credentials; None leaves the current value untouched"""
        encrypted_secret = encryption.encrypt(secret_key) if secret_key else None
        if not self.tenant_repository.set_drgreen_credentials(tenant_id, api_key or None, encrypted_secret):
            raise NotFoundError("Tenant not found")
        logger.info(f"Updated Dr. Green credentials for tenant {tenant_id}")

    def describe(self, tenant: Tenant) -> dict:
        """Safe view of stored credentials for settings screens"""
        return {
            'api_key': encryption.mask_secret(tenant.drgreen_api_key or ''),
            'has_secret_key': bool(tenant.drgreen_secret_key),
            'configured': tenant.has_drgreen_credentials,
        }
