"""
Pytest fixtures and configuration for BudStack backend tests

Shared domain objects, token helpers and an API test client. Nothing here
touches a real database; repositories are mocked per test.

Author: TM3
Date: 2025-11-17
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from budstack.core.auth import (
    TokenUser, create_access_token, ROLE_PATIENT, ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN,
)
from budstack.core.rate_limit import rate_limiter
from budstack.domain.cart import Cart, CartItem
from budstack.domain.order import Order, OrderItem
from budstack.domain.product import Product
from budstack.domain.tenant import Tenant, TenantBranding

TENANT_ID = "tenant-1"


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Rate limit windows are process-wide; start each test with a clean slate"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def sample_tenant():
    return Tenant(
        id=TENANT_ID,
        business_name="Healing Buds",
        subdomain="healingbuds",
        country_code="PT",
        is_active=True,
        template_id="template-1",
        template_slug="healingbuds",
        settings={"contact_info": {"phone": "+351 000 000"}},
        branding=TenantBranding(id="branding-1", tenant_id=TENANT_ID),
        created_at=datetime(2025, 11, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def tenant_with_credentials(sample_tenant):
    return sample_tenant.model_copy(update={
        "drgreen_api_key": "pk_live_1234",
        "drgreen_secret_key": "encrypted-secret",
    })


@pytest.fixture
def sample_product():
    return Product(
        id="product-1",
        tenant_id=TENANT_ID,
        name="Blue Dream",
        slug="blue-dream",
        strain_type="HYBRID",
        thc_content=Decimal("21.5"),
        price=Decimal("9.50"),
        stock_quantity=120,
    )


@pytest.fixture
def sample_cart():
    return Cart(
        id="cart-1",
        user_id="patient-1",
        tenant_id=TENANT_ID,
        items=[
            CartItem(product_id="product-1", product_name="Blue Dream",
                     unit_price=Decimal("9.50"), quantity=2, size=5),
            CartItem(product_id="product-2", product_name="OG Kush",
                     unit_price=Decimal("12.00"), quantity=1, size=10),
        ],
    )


@pytest.fixture
def sample_order():
    return Order(
        id="order-1",
        order_number="BS-20251115-AB12CD",
        tenant_id=TENANT_ID,
        user_id="patient-1",
        subtotal=Decimal("215.00"),
        shipping_cost=Decimal("5.00"),
        total=Decimal("220.00"),
        status="PENDING",
        payment_status="PENDING",
        shipping_info={"address1": "Rua Augusta 1", "city": "Lisboa", "state": "Lisboa",
                       "postal_code": "1100-053", "country": "PT"},
        payment_nonce="nonce-123",
        items=[
            OrderItem(product_id="product-1", product_name="Blue Dream", quantity=2, size=5, price=Decimal("47.50")),
            OrderItem(product_id="product-2", product_name="OG Kush", quantity=1, size=10, price=Decimal("120.00")),
        ],
    )


@pytest.fixture
def patient_user():
    return TokenUser(id="patient-1", email="patient@example.com", role=ROLE_PATIENT, tenant_id=TENANT_ID)


@pytest.fixture
def tenant_admin_user():
    return TokenUser(id="admin-1", email="admin@healingbuds.pt", role=ROLE_TENANT_ADMIN, tenant_id=TENANT_ID)


@pytest.fixture
def super_admin_user():
    return TokenUser(id="root-1", email="root@budstack.to", role=ROLE_SUPER_ADMIN)


def bearer(user: TokenUser) -> dict:
    token = create_access_token(user.id, user.email, user.role, tenant_id=user.tenant_id, name=user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_headers(patient_user):
    return bearer(patient_user)


@pytest.fixture
def tenant_admin_headers(tenant_admin_user):
    return bearer(tenant_admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user):
    return bearer(super_admin_user)


@pytest.fixture
def client():
    """
    API client with a clean dependency override table

    Scope: function
    """
    from budstack.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
