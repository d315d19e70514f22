"""
API tests for storefront endpoints

Author: TM3
Date: 2025-11-17
"""
from unittest.mock import patch

import pytest

from budstack.api.deps import get_store
from budstack.core.exceptions import NotFoundError, ValidationError
from budstack.main import app


@pytest.fixture
def store_client(client, sample_tenant):
    app.dependency_overrides[get_store] = lambda: sample_tenant
    return client


class TestStoreInfo:

    @patch('budstack.api.deps.TenantService')
    def test_unknown_store_is_404(self, mock_service_class, client):
        mock_service_class.return_value.get_by_slug.return_value = None

        response = client.get("/api/v1/store/nowhere")

        assert response.status_code == 404
        assert response.json()["detail"] == "Store not found"

    def test_store_info(self, store_client):
        response = store_client.get("/api/v1/store/healingbuds")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["subdomain"] == "healingbuds"
        assert "drgreen_api_key" not in data

    @patch('budstack.api.store.TenantService')
    def test_resolve_by_host(self, mock_service_class, client, sample_tenant):
        mock_service_class.return_value.resolve_tenant.return_value = sample_tenant

        response = client.get("/api/v1/store/resolve", params={"host": "healingbuds.budstack.to"})

        assert response.status_code == 200
        mock_service_class.return_value.resolve_tenant.assert_called_once_with("healingbuds.budstack.to", "/")


class TestCatalogue:

    @patch('budstack.api.store.ProductService')
    def test_list_products(self, mock_service_class, store_client, sample_product):
        mock_service_class.return_value.list_storefront.return_value = ([sample_product], 1)

        response = store_client.get("/api/v1/store/healingbuds/products", params={"limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["limit"] == 10
        assert body["data"][0]["name"] == "Blue Dream"

    @patch('budstack.api.store.ProductService')
    def test_missing_product(self, mock_service_class, store_client):
        mock_service_class.return_value.get_storefront_product.side_effect = NotFoundError("Product not found")

        response = store_client.get("/api/v1/store/healingbuds/products/unknown")

        assert response.status_code == 404


class TestCartAndOrders:

    def test_cart_requires_login(self, store_client):
        assert store_client.get("/api/v1/store/healingbuds/cart").status_code == 401

    @patch('budstack.api.store.CartService')
    def test_add_to_cart(self, mock_service_class, store_client, sample_cart, patient_headers):
        mock_service_class.return_value.add_item.return_value = sample_cart

        response = store_client.post(
            "/api/v1/store/healingbuds/cart/add",
            json={"product_id": "product-1", "quantity": 2, "size": 5},
            headers=patient_headers,
        )

        assert response.status_code == 200
        user_id, tenant_id, body = mock_service_class.return_value.add_item.call_args[0]
        assert (user_id, tenant_id, body.size) == ("patient-1", "tenant-1", 5)

    @patch('budstack.api.store.CartService')
    def test_invalid_pack_size(self, mock_service_class, store_client, patient_headers):
        mock_service_class.return_value.add_item.side_effect = ValidationError("Invalid size")

        response = store_client.post(
            "/api/v1/store/healingbuds/cart/add",
            json={"product_id": "product-1", "quantity": 1, "size": 3},
            headers=patient_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid size"

    @patch('budstack.api.store.OrderService')
    def test_submit_order(self, mock_service_class, store_client, sample_order, patient_headers):
        mock_service_class.return_value.submit_order.return_value = sample_order

        response = store_client.post(
            "/api/v1/store/healingbuds/orders/submit",
            json={"shipping_info": sample_order.shipping_info},
            headers=patient_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["order_number"] == "BS-20251115-AB12CD"

    @patch('budstack.api.store.OrderService')
    def test_submit_empty_cart(self, mock_service_class, store_client, sample_order, patient_headers):
        mock_service_class.return_value.submit_order.side_effect = ValidationError("Cart is empty")

        response = store_client.post(
            "/api/v1/store/healingbuds/orders/submit",
            json={"shipping_info": sample_order.shipping_info},
            headers=patient_headers,
        )

        assert response.status_code == 400


class TestCookieConsent:

    @patch('budstack.api.store.TenantService')
    def test_visitor_country_is_passed_through(self, mock_service_class, store_client, sample_tenant):
        mock_service_class.return_value.cookie_consent.return_value = {"model": "opt-out"}

        response = store_client.get("/api/v1/store/healingbuds/cookie-consent", params={"country": "US"})

        assert response.status_code == 200
        assert response.json()["data"]["model"] == "opt-out"
        mock_service_class.return_value.cookie_consent.assert_called_once_with(sample_tenant, "US")

    def test_country_must_be_two_letters(self, store_client):
        response = store_client.get("/api/v1/store/healingbuds/cookie-consent", params={"country": "USA"})

        assert response.status_code == 422
