"""
Product Service - tenant catalogue

Handles:
- Storefront listing and product detail with similar products
- Tenant admin CRUD, bulk actions and manual ordering
- Catalogue sync from the Dr. Green strains API
- Low stock / out of stock webhooks on stock changes

Author: TM3
Date: 2025-11-11
"""
import logging
from typing import Optional, Dict, Any, List, Mapping, Tuple

from fastapi import BackgroundTasks

from budstack.core.auth import TokenUser
from budstack.core.exceptions import NotFoundError, ValidationError
from budstack.domain.audit import AuditActions
from budstack.domain.product import (
    Product, ProductCreate, ProductUpdate, ProductBulkAction, currency_for_country,
)
from budstack.domain.template import slugify
from budstack.domain.tenant import Tenant
from budstack.domain.webhook import WebhookEvents
from budstack.repositories.product_repository import ProductRepository
from budstack.services.audit_service import AuditService
from budstack.services.credentials_service import CredentialsService
from budstack.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

SYNC_FIELDS = (
    'name', 'description', 'strain_type', 'thc_content', 'cbd_content',
    'price', 'currency', 'stock_quantity', 'image_url',
)


def stock_event(previous: Optional[Product], current: Product) -> Optional[str]:
    """Webhook event for a stock change, None when nothing crossed a threshold"""
    if previous is not None and previous.stock_quantity == current.stock_quantity:
        return None
    if current.stock_quantity == 0 and (previous is None or previous.stock_quantity > 0):
        return WebhookEvents.PRODUCT_OUT_OF_STOCK
    if current.is_low_stock and (previous is None or not previous.is_low_stock):
        return WebhookEvents.PRODUCT_LOW_STOCK
    return None


class ProductService:

    def __init__(
        self,
        repository: Optional[ProductRepository] = None,
        audit_service: Optional[AuditService] = None,
        webhook_service: Optional[WebhookService] = None,
        credentials_service: Optional[CredentialsService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.repository = repository or ProductRepository()
        self.audit_service = audit_service or AuditService()
        self.webhook_service = webhook_service or WebhookService()
        self.credentials_service = credentials_service or CredentialsService()
        self.background_tasks = background_tasks

    # ------------------------------------------------------------------
    # Storefront
    # ------------------------------------------------------------------

    def list_storefront(
        self,
        tenant: Tenant,
        search: Optional[str] = None,
        strain_type: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        return self.repository.find_all(
            tenant_id=tenant.id,
            active_only=True,
            search=search,
            strain_type=strain_type,
            category=category,
            limit=limit,
            offset=offset,
        )

    def get_storefront_product(self, tenant: Tenant, id_or_slug: str) -> Dict[str, Any]:
        """Active product by id or slug, plus up to 4 similar ones"""
        product = self.repository.find_by_id(id_or_slug, tenant.id)
        if product is None:
            product = self.repository.find_by_slug(tenant.id, id_or_slug)
        if product is None or not product.is_active:
            raise NotFoundError("Product not found")

        return {
            'product': product,
            'similar': self.repository.find_similar(product, limit=4),
        }

    # ------------------------------------------------------------------
    # Tenant admin
    # ------------------------------------------------------------------

    def list(self, tenant_id: str, **filters) -> Tuple[List[Product], int]:
        return self.repository.find_all(tenant_id=tenant_id, **filters)

    def get(self, product_id: str, tenant_id: str) -> Product:
        product = self.repository.find_by_id(product_id, tenant_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def _unique_slug(self, tenant_id: str, base: str) -> str:
        slug = base
        suffix = 2
        while self.repository.slug_exists(tenant_id, slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def create(self, tenant: Tenant, data: ProductCreate, user: TokenUser, headers: Mapping[str, str] = None) -> Product:
        fields = data.model_dump()
        base_slug = slugify(fields.pop('slug') or data.name)
        if not base_slug:
            raise ValidationError("Product name must contain letters or numbers")
        fields['slug'] = self._unique_slug(tenant.id, base_slug)
        fields['currency'] = fields.get('currency') or currency_for_country(tenant.country_code)

        product = self.repository.create(tenant.id, fields)

        self.audit_service.log(
            AuditActions.PRODUCT_CREATED, 'Product', product.id,
            user=user, tenant_id=tenant.id,
            metadata={'name': product.name, 'price': float(product.price)},
            headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, WebhookEvents.PRODUCT_CREATED, tenant.id, product.to_dict()
        )
        self._notify_stock(None, product)
        return product

    def update(self, product_id: str, tenant_id: str, data: ProductUpdate, user: TokenUser, headers: Mapping[str, str] = None) -> Product:
        previous = self.get(product_id, tenant_id)
        fields = data.model_dump(exclude_unset=True)
        product = self.repository.update(product_id, tenant_id, fields)
        if not product:
            raise NotFoundError("Product not found")

        action = AuditActions.PRODUCT_STOCK_UPDATED if set(fields) == {'stock_quantity'} else AuditActions.PRODUCT_UPDATED
        self.audit_service.log(
            action, 'Product', product_id,
            user=user, tenant_id=tenant_id,
            metadata={
                'fields': sorted(fields.keys()),
                'previous_stock': previous.stock_quantity,
                'new_stock': product.stock_quantity,
            },
            headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, WebhookEvents.PRODUCT_UPDATED, tenant_id, product.to_dict()
        )
        self._notify_stock(previous, product)
        return product

    def delete(self, product_id: str, tenant_id: str, user: TokenUser, headers: Mapping[str, str] = None) -> None:
        product = self.get(product_id, tenant_id)
        self.repository.delete(product_id, tenant_id)

        self.audit_service.log(
            AuditActions.PRODUCT_DELETED, 'Product', product_id,
            user=user, tenant_id=tenant_id, metadata={'name': product.name}, headers=headers,
        )
        self.webhook_service.dispatch(
            self.background_tasks, WebhookEvents.PRODUCT_DELETED, tenant_id,
            {'id': product_id, 'name': product.name},
        )

    def bulk_action(self, tenant_id: str, data: ProductBulkAction, user: TokenUser, headers: Mapping[str, str] = None) -> int:
        if data.action == 'delete':
            affected = self.repository.bulk_delete(tenant_id, data.product_ids)
        else:
            affected = self.repository.bulk_set_active(tenant_id, data.product_ids, data.action == 'activate')

        if not affected:
            raise NotFoundError("No valid products found")

        self.audit_service.log(
            AuditActions.PRODUCT_BULK_UPDATED, 'Product', None,
            user=user, tenant_id=tenant_id,
            metadata={'action': data.action, 'product_ids': data.product_ids, 'count': affected},
            headers=headers,
        )
        return affected

    def reorder(self, tenant_id: str, product_ids: List[str]) -> int:
        return self.repository.reorder(tenant_id, product_ids)

    def _notify_stock(self, previous: Optional[Product], product: Product) -> None:
        event = stock_event(previous, product)
        if event:
            self.webhook_service.dispatch(self.background_tasks, event, product.tenant_id, {
                'id': product.id,
                'name': product.name,
                'stock_quantity': product.stock_quantity,
            })

    # ------------------------------------------------------------------
    # Dr. Green sync
    # ------------------------------------------------------------------

    async def sync_from_drgreen(self, tenant: Tenant, user: TokenUser, headers: Mapping[str, str] = None) -> Dict[str, int]:
        """
        Upsert the tenant's catalogue from the Dr. Green strains of its country

        Existing products are matched on external_id; manual fields (slug,
        category, is_active, sort_order) are left alone.
        Strains no location marks as available are stored with zero stock.

        Returns:
            {'created': n, 'updated': m, 'total': n + m}
        """
        connector = self.credentials_service.get_connector(tenant)
        strains = await connector.get_strains(tenant.country_code)

        existing = self.repository.find_by_external_ids(
            tenant.id, [strain['external_id'] for strain in strains if strain.get('external_id')]
        )

        created = updated = 0
        for strain in strains:
            if not strain.get('external_id') or not strain.get('name'):
                continue

            fields = {key: strain[key] for key in SYNC_FIELDS}
            if not strain['in_stock']:
                # no location is selling it; keep it out of carts
                fields['stock_quantity'] = 0
            previous = existing.get(strain['external_id'])

            if previous:
                product = self.repository.update(previous.id, tenant.id, fields)
                updated += 1
            else:
                fields['external_id'] = strain['external_id']
                fields['slug'] = self._unique_slug(tenant.id, slugify(strain['name']) or strain['external_id'])
                fields['is_active'] = True
                product = self.repository.create(tenant.id, fields)
                created += 1

            if product:
                self._notify_stock(previous, product)

        logger.info(f"Synced {created + updated} products for tenant {tenant.subdomain} ({created} new)")

        self.audit_service.log(
            AuditActions.PRODUCTS_SYNCED, 'Product', None,
            user=user, tenant_id=tenant.id,
            metadata={'created': created, 'updated': updated, 'country': tenant.country_code},
            headers=headers,
        )
        return {'created': created, 'updated': updated, 'total': created + updated}
