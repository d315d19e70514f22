"""
Dr. Green API Connector
Strain catalogue, NFT licence verification and order submission

Two-layer auth: every request carries the tenant API key in x-auth-apikey;
requests with a body are also signed (SHA-256 with the tenant private key,
base64) in x-auth-signature.

Author: TM3
Date: 2025-11-07
"""
import json
import base64
import logging
from typing import Dict, List, Optional, Any

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from budstack.core.config import settings
from budstack.core.exceptions import ExternalServiceError, MissingCredentialsError
from budstack.domain.product import currency_for_country

logger = logging.getLogger(__name__)


def _load_private_key(secret_key: str):
    pem = secret_key
    if 'BEGIN' not in secret_key:
        # Keys are usually stored base64-wrapped
        try:
            pem = base64.b64decode(secret_key).decode('utf-8')
        except (ValueError, UnicodeDecodeError):
            pem = secret_key
    return serialization.load_pem_private_key(pem.encode('utf-8'), password=None)


def generate_signature(payload: str, secret_key: str) -> str:
    """Base64 signature of payload with the tenant's EC or RSA private key"""
    try:
        key = _load_private_key(secret_key)
    except (ValueError, TypeError) as e:
        raise ExternalServiceError(f"Failed to generate API signature: {e}") from e

    data = payload.encode('utf-8')
    if isinstance(key, ec.EllipticCurvePrivateKey):
        signature = key.sign(data, ec.ECDSA(hashes.SHA256()))
    elif isinstance(key, rsa.RSAPrivateKey):
        signature = key.sign(data, padding.PKCS1v15(), hashes.SHA256())
    else:
        raise ExternalServiceError("Unsupported private key type for API signature")

    return base64.b64encode(signature).decode('ascii')


class DrGreenConnector:
    """
    Connector for the Dr. Green REST API

    Handles:
    - Strain (product) catalogue per country
    - NFT licence verification
    - Order submission
    """

    def __init__(self, api_key: str, secret_key: str, base_url: str = None, image_base_url: str = None):
        if not api_key or not secret_key:
            raise MissingCredentialsError("Dr. Green API credentials not configured")

        self.api_key = api_key
        self.secret_key = secret_key
        self.base_url = (base_url or settings.DRGREEN_API_URL).rstrip('/')
        self.image_base_url = (image_base_url or settings.DRGREEN_IMAGE_BASE_URL).rstrip('/')

    async def _request(self, endpoint: str, method: str = 'GET', body: Optional[Dict] = None) -> Dict:
        payload = json.dumps(body) if body is not None else ''
        headers = {
            'Content-Type': 'application/json',
            'x-auth-apikey': self.api_key,
        }
        # GET requests are not signed
        if method != 'GET' and payload:
            headers['x-auth-signature'] = generate_signature(payload, self.secret_key)

        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method,
                    url,
                    content=payload or None,
                    headers=headers,
                    timeout=30.0
                )
            except httpx.HTTPError as e:
                logger.error(f"Dr. Green request {method} {endpoint} failed: {e}")
                raise ExternalServiceError(f"Dr. Green API unreachable: {e}") from e

        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Dr. Green API Error: {response.status_code} {response.reason_phrase} - {response.text[:500]}"
            )

        return response.json()

    def normalize_strain(self, strain: Dict[str, Any], country: str) -> Dict[str, Any]:
        """
        Map a raw strain onto our product fields

        - stock is the sum over strainLocations
        - in stock when any location is available and total stock > 0
        - relative image paths are prefixed with the image host
        - currency follows the catalogue country
        """
        locations = strain.get('strainLocations') or []
        total_stock = sum(location.get('stockQuantity') or 0 for location in locations)
        available_anywhere = any(location.get('isAvailable') is True for location in locations)

        image_url = strain.get('imageUrl')
        if image_url and not image_url.startswith('http'):
            image_url = f"{self.image_base_url}/{image_url.lstrip('/')}"

        strain_type = (strain.get('type') or 'HYBRID').upper()
        if strain_type not in ('INDICA', 'SATIVA', 'HYBRID'):
            strain_type = 'HYBRID'

        return {
            'external_id': strain.get('id'),
            'name': strain.get('name'),
            'description': strain.get('description'),
            'strain_type': strain_type,
            'thc_content': strain.get('thc') or 0,
            'cbd_content': strain.get('cbd') or 0,
            'price': strain.get('retailPrice') or 0,
            'currency': currency_for_country(country),
            'stock_quantity': total_stock,
            'in_stock': available_anywhere and total_stock > 0,
            'image_url': image_url,
        }

    async def get_strains(self, country: str = 'SA') -> List[Dict[str, Any]]:
        """Normalized strains available in a country"""
        response = await self._request(f"/strains?country={country}")
        strains = (response.get('data') or {}).get('strains') or []
        return [self.normalize_strain(strain, country) for strain in strains]

    async def get_strain(self, strain_id: str, country: str = 'SA') -> Dict[str, Any]:
        response = await self._request(f"/strains/{strain_id}")
        return self.normalize_strain(response.get('data') or {}, country)

    async def verify_nft(self, token_id: str) -> Dict[str, Any]:
        return await self._request(f"/nfts/{token_id}/verify")

    async def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request('/orders', method='POST', body=order_data)
