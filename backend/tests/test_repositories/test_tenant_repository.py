"""
Unit tests for TenantRepository and CartRepository row mapping

Author: TM3
Date: 2025-11-17
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

from budstack.domain.cart import Cart, CartItem
from budstack.repositories.cart_repository import CartRepository
from budstack.repositories.tenant_repository import TenantRepository, row_to_tenant


def tenant_row(**overrides):
    row = {
        'id': 'tenant-1',
        'business_name': 'Healing Buds',
        'subdomain': 'healingbuds',
        'custom_domain': None,
        'nft_token_id': 'nft-1',
        'country_code': 'PT',
        'is_active': True,
        'template_id': 'template-1',
        'active_tenant_template_id': None,
        'settings': None,
        'drgreen_api_key': None,
        'drgreen_secret_key': None,
        'created_at': None,
        'updated_at': None,
        'template_slug': 'healingbuds',
        'template_name': 'HealingBuds Default',
        'branding_id': 'branding-1',
        'primary_color': '#10b981',
        'secondary_color': '#059669',
        'accent_color': '#34d399',
        'font_family': 'Inter',
        'logo_url': None,
    }
    row.update(overrides)
    return row


def mock_connection(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


class TestRowToTenant:

    def test_branding_columns_become_nested_model(self):
        tenant = row_to_tenant(tenant_row())

        assert tenant.branding.id == 'branding-1'
        assert tenant.branding.tenant_id == 'tenant-1'
        assert tenant.branding.primary_color == '#10b981'
        assert tenant.settings == {}

    def test_no_branding_row(self):
        tenant = row_to_tenant(tenant_row(branding_id=None))

        assert tenant.branding is None

    def test_credentials_are_loaded_but_not_serialized(self):
        tenant = row_to_tenant(tenant_row(drgreen_api_key='pk', drgreen_secret_key='sk'))

        data = tenant.to_dict()
        assert tenant.has_drgreen_credentials
        assert 'drgreen_secret_key' not in data
        assert 'drgreen_api_key' not in data
        assert data['has_drgreen_credentials'] is True


class TestTenantRepository:

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_find_by_subdomain_active_only(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = tenant_row()

        tenant = TenantRepository().find_by_subdomain('healingbuds', active_only=True)

        assert tenant.subdomain == 'healingbuds'
        query, params = mock_cursor.execute.call_args[0]
        assert "t.is_active = TRUE" in query
        assert params == ('healingbuds',)

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_bulk_set_active_returns_updated_ids_and_commits(self, mock_get_conn):
        mock_conn, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [{'id': 'tenant-1'}, {'id': 'tenant-3'}]

        updated = TenantRepository().bulk_set_active(['tenant-1', 'tenant-2', 'tenant-3'], True)

        assert updated == ['tenant-1', 'tenant-3']
        query, params = mock_cursor.execute.call_args[0]
        assert "is_active <> %s" in query
        assert params == (True, ['tenant-1', 'tenant-2', 'tenant-3'], True)
        mock_conn.commit.assert_called_once()


class TestCartRepository:

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_find_builds_items_from_json(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            'id': 'cart-1',
            'user_id': 'patient-1',
            'tenant_id': 'tenant-1',
            'items': [{'product_id': 'product-1', 'product_name': 'Blue Dream',
                       'unit_price': '9.50', 'quantity': 2, 'size': 5, 'image_url': None}],
            'updated_at': None,
        }

        cart = CartRepository().find('patient-1', 'tenant-1')

        assert cart.items[0].unit_price == Decimal('9.50')
        assert cart.total_amount == Decimal('95.00')

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_save_upserts_storage_items(self, mock_get_conn):
        mock_conn, mock_cursor = mock_connection(mock_get_conn)
        item = CartItem(product_id='product-1', product_name='Blue Dream',
                        unit_price=Decimal('9.50'), quantity=1, size=2)
        mock_cursor.fetchone.return_value = {
            'id': 'cart-1', 'user_id': 'patient-1', 'tenant_id': 'tenant-1',
            'items': [item.to_storage()], 'updated_at': None,
        }

        saved = CartRepository().save(Cart(id='cart-1', user_id='patient-1', tenant_id='tenant-1', items=[item]))

        query, params = mock_cursor.execute.call_args[0]
        assert "ON CONFLICT (user_id, tenant_id)" in query
        assert params[0] == 'cart-1'
        assert params[3].adapted == [item.to_storage()]
        assert saved.items == [item]
        mock_conn.commit.assert_called_once()
