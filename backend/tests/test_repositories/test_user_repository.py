"""
Unit tests for UserRepository: customer scoping and reset tokens

Author: TM3
Date: 2025-11-21
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from budstack.repositories.user_repository import UserRepository


def mock_connection(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


def user_row(**overrides):
    row = {
        'id': 'patient-1',
        'email': 'patient@example.com',
        'name': 'Ana',
        'phone': None,
        'role': 'PATIENT',
        'tenant_id': 'tenant-1',
        'is_active': True,
        'password_hash': 'hash',
        'created_at': None,
        'updated_at': None,
    }
    row.update(overrides)
    return row


class TestCustomers:

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_find_customer_is_scoped_to_tenant_patients(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = user_row(order_count=3)

        customer = UserRepository().find_customer('patient-1', 'tenant-1')

        query, params = mock_cursor.execute.call_args[0]
        assert "u.tenant_id = %s" in query
        assert "u.role = 'PATIENT'" in query
        assert params == ('patient-1', 'tenant-1')
        assert customer.order_count == 3
        assert "password_hash" not in customer.to_dict()

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_update_customer_ignores_other_columns(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = user_row(is_active=False)

        UserRepository().update_customer('patient-1', 'tenant-1', {'is_active': False, 'role': 'SUPER_ADMIN'})

        update_query, update_params = mock_cursor.execute.call_args_list[0][0]
        assert update_query.startswith("UPDATE users SET is_active = %s")
        assert "role =" not in update_query.split("WHERE")[0]
        assert update_params == [False, 'patient-1', 'tenant-1']


class TestResetTokens:

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_set_reset_token_commits(self, mock_get_conn):
        mock_conn, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1
        expires_at = datetime(2025, 11, 21, 12, tzinfo=timezone.utc)

        assert UserRepository().set_reset_token('patient-1', 'f' * 64, expires_at)

        assert mock_cursor.execute.call_args[0][1] == ('f' * 64, expires_at, 'patient-1')
        mock_conn.commit.assert_called_once()

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_find_by_reset_token_requires_unexpired_active_user(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert UserRepository().find_by_reset_token('f' * 64) is None

        query, params = mock_cursor.execute.call_args[0]
        assert "reset_token_expires_at > NOW()" in query
        assert "is_active = TRUE" in query
        assert params == ('f' * 64,)

    @patch('budstack.repositories.base.get_db_connection_dict')
    def test_reset_password_spends_the_token(self, mock_get_conn):
        _, mock_cursor = mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert UserRepository().reset_password('patient-1', 'new-hash')

        query, params = mock_cursor.execute.call_args[0]
        assert "reset_token_hash = NULL" in query
        assert params == ('new-hash', 'patient-1')
