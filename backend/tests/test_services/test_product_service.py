"""
Unit tests for ProductService

Author: TM3
Date: 2025-11-17
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from budstack.connectors.drgreen_connector import DrGreenConnector
from budstack.core.exceptions import NotFoundError, ValidationError
from budstack.domain.product import ProductBulkAction, ProductCreate, ProductUpdate
from budstack.domain.webhook import WebhookEvents
from budstack.services.product_service import ProductService, stock_event


@pytest.fixture
def service():
    return ProductService(
        repository=Mock(),
        audit_service=Mock(),
        webhook_service=Mock(),
        credentials_service=Mock(),
        background_tasks=Mock(),
    )


class TestStockEvent:

    def test_out_of_stock(self, sample_product):
        current = sample_product.model_copy(update={"stock_quantity": 0})

        assert stock_event(sample_product, current) == WebhookEvents.PRODUCT_OUT_OF_STOCK

    def test_low_stock_crossing(self, sample_product):
        current = sample_product.model_copy(update={"stock_quantity": 8})

        assert stock_event(sample_product, current) == WebhookEvents.PRODUCT_LOW_STOCK

    def test_no_event_while_already_low(self, sample_product):
        previous = sample_product.model_copy(update={"stock_quantity": 9})
        current = sample_product.model_copy(update={"stock_quantity": 5})

        assert stock_event(previous, current) is None

    def test_no_event_when_unchanged(self, sample_product):
        assert stock_event(sample_product, sample_product) is None

    def test_new_product_without_stock(self, sample_product):
        current = sample_product.model_copy(update={"stock_quantity": 0})

        assert stock_event(None, current) == WebhookEvents.PRODUCT_OUT_OF_STOCK


class TestProductAdmin:

    def test_create_assigns_unique_slug_and_currency(self, service, sample_tenant, sample_product, tenant_admin_user):
        service.repository.slug_exists.side_effect = [True, False]
        service.repository.create.return_value = sample_product

        service.create(sample_tenant, ProductCreate(name="Blue Dream", price=Decimal("9.50"), stock_quantity=120),
                       tenant_admin_user)

        tenant_id, fields = service.repository.create.call_args[0]
        assert tenant_id == "tenant-1"
        assert fields["slug"] == "blue-dream-2"
        assert fields["currency"] == "EUR"
        events = [call[0][1] for call in service.webhook_service.dispatch.call_args_list]
        assert events == [WebhookEvents.PRODUCT_CREATED]

    def test_create_rejects_unsluggable_name(self, service, sample_tenant, tenant_admin_user):
        with pytest.raises(ValidationError):
            service.create(sample_tenant, ProductCreate(name="!!!", price=Decimal("1")), tenant_admin_user)

    def test_update_emits_stock_webhook(self, service, sample_product, tenant_admin_user):
        service.repository.find_by_id.return_value = sample_product
        service.repository.update.return_value = sample_product.model_copy(update={"stock_quantity": 0})

        service.update("product-1", "tenant-1", ProductUpdate(stock_quantity=0), tenant_admin_user)

        events = [call[0][1] for call in service.webhook_service.dispatch.call_args_list]
        assert events == [WebhookEvents.PRODUCT_UPDATED, WebhookEvents.PRODUCT_OUT_OF_STOCK]

    def test_get_missing_product(self, service):
        service.repository.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            service.get("product-9", "tenant-1")

    def test_bulk_action_with_no_matches(self, service, tenant_admin_user):
        service.repository.bulk_set_active.return_value = 0

        with pytest.raises(NotFoundError):
            service.bulk_action("tenant-1", ProductBulkAction(action="activate", product_ids=["x"]), tenant_admin_user)

        service.audit_service.log.assert_not_called()

    def test_bulk_delete(self, service, tenant_admin_user):
        service.repository.bulk_delete.return_value = 2

        affected = service.bulk_action(
            "tenant-1", ProductBulkAction(action="delete", product_ids=["a", "b"]), tenant_admin_user
        )

        assert affected == 2
        service.repository.bulk_delete.assert_called_once_with("tenant-1", ["a", "b"])


class TestStorefront:

    def test_inactive_product_is_hidden(self, service, sample_tenant, sample_product):
        service.repository.find_by_id.return_value = None
        service.repository.find_by_slug.return_value = sample_product.model_copy(update={"is_active": False})

        with pytest.raises(NotFoundError):
            service.get_storefront_product(sample_tenant, "blue-dream")

    def test_product_with_similar(self, service, sample_tenant, sample_product):
        service.repository.find_by_id.return_value = sample_product
        service.repository.find_similar.return_value = []

        result = service.get_storefront_product(sample_tenant, "product-1")

        assert result["product"] is sample_product
        service.repository.find_similar.assert_called_once_with(sample_product, limit=4)


class TestSync:

    def test_sync_creates_and_updates(self, service, sample_tenant, sample_product, tenant_admin_user):
        strain = {
            "name": "Blue Dream", "description": None, "strain_type": "HYBRID", "thc_content": 21,
            "cbd_content": 0, "price": 9.5, "currency": "EUR", "stock_quantity": 50, "image_url": None,
            "in_stock": True,
        }
        connector = Mock()
        connector.get_strains = AsyncMock(return_value=[
            {**strain, "external_id": "strain-1"},
            {**strain, "external_id": "strain-2", "name": "OG Kush"},
            {**strain, "external_id": None},
        ])
        service.credentials_service.get_connector.return_value = connector
        existing = sample_product.model_copy(update={"external_id": "strain-1"})
        service.repository.find_by_external_ids.return_value = {"strain-1": existing}
        service.repository.update.return_value = existing
        service.repository.create.return_value = sample_product
        service.repository.slug_exists.return_value = False

        result = asyncio.run(service.sync_from_drgreen(sample_tenant, tenant_admin_user))

        assert result == {"created": 1, "updated": 1, "total": 2}
        connector.get_strains.assert_awaited_once_with("PT")
        created_fields = service.repository.create.call_args[0][1]
        assert created_fields["slug"] == "og-kush"
        assert created_fields["external_id"] == "strain-2"

    def test_sync_zeroes_stock_of_unavailable_strain(self, service, sample_tenant, sample_product, tenant_admin_user):
        connector = DrGreenConnector("pk_live_1234", "secret", image_base_url="https://img.drgreen.test")
        strain = connector.normalize_strain({
            "id": "strain-7", "name": "Gorilla Glue", "type": "indica", "retailPrice": 11,
            "strainLocations": [{"stockQuantity": 50, "isAvailable": False}],
        }, "PT")
        connector.get_strains = AsyncMock(return_value=[strain])
        service.credentials_service.get_connector.return_value = connector
        service.repository.find_by_external_ids.return_value = {}
        service.repository.slug_exists.return_value = False
        service.repository.create.side_effect = lambda tenant_id, fields: sample_product.model_copy(update=fields)

        asyncio.run(service.sync_from_drgreen(sample_tenant, tenant_admin_user))

        stored = service.repository.create.call_args[0][1]
        assert stored["stock_quantity"] == 0
        assert not service.repository.create.side_effect("tenant-1", stored).is_available
