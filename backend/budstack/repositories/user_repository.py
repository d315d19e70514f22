"""
User Repository - Data Access Layer for Users

Author: TM3
Date: 2025-11-04
"""
from datetime import datetime
from typing import List, Optional, Tuple, Dict, Any

from budstack.domain.user import User
from budstack.repositories.base import BaseRepository, new_id, build_set_clause


USER_COLUMNS = """
    u.id, u.email, u.name, u.phone, u.role, u.tenant_id, u.is_active,
    u.password_hash, u.created_at, u.updated_at
"""


class UserRepository(BaseRepository):

    def find_by_id(self, user_id: str) -> Optional[User]:
        row = self._fetch_one(f"SELECT {USER_COLUMNS} FROM users u WHERE u.id = %s", (user_id,))
        return User(**row) if row else None

    def find_by_email(self, email: str, conn=None) -> Optional[User]:
        row = self._fetch_one(
            f"SELECT {USER_COLUMNS} FROM users u WHERE LOWER(u.email) = LOWER(%s)",
            (email,),
            conn=conn
        )
        return User(**row) if row else None

    def email_exists(self, email: str, conn=None) -> bool:
        return self.find_by_email(email, conn=conn) is not None

    def find_tenant_admin(self, tenant_id: str) -> Optional[User]:
        row = self._fetch_one(f"""
            SELECT {USER_COLUMNS} FROM users u
            WHERE u.tenant_id = %s AND u.role = 'TENANT_ADMIN'
            ORDER BY u.created_at
            LIMIT 1
        """, (tenant_id,))
        return User(**row) if row else None

    def find_customers(
        self,
        tenant_id: str,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[User], int]:
        """
        Patients of one tenant, newest first, with their order counts
        """
        conditions = ["u.tenant_id = %s", "u.role = 'PATIENT'"]
        params: List[Any] = [tenant_id]

        if search:
            conditions.append("(u.email ILIKE %s OR u.name ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        where_clause = " AND ".join(conditions)

        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) as total FROM users u WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {USER_COLUMNS},
                    (SELECT COUNT(*) FROM orders o WHERE o.user_id = u.id) as order_count
                FROM users u
                WHERE {where_clause}
                ORDER BY u.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

        return [User(**row) for row in rows], total

    def create(
        self,
        email: str,
        password_hash: str,
        role: str,
        tenant_id: Optional[str] = None,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        conn=None
    ) -> User:
        row = self._write_returning("""
            INSERT INTO users (id, email, password_hash, name, phone, role, tenant_id, is_active, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, TRUE, NOW(), NOW())
            RETURNING id, email, name, phone, role, tenant_id, is_active, created_at, updated_at
        """, (new_id(), email.lower(), password_hash, name, phone, role, tenant_id), conn=conn)
        return User(**row)

    def update_password(self, user_id: str, password_hash: str) -> bool:
        return self._write(
            "UPDATE users SET password_hash = %s, updated_at = NOW() WHERE id = %s",
            (password_hash, user_id)
        ) > 0

    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        set_clause, params = build_set_clause(fields, ('name', 'phone'))
        if set_clause:
            self._write(
                f"UPDATE users SET {set_clause}, updated_at = NOW() WHERE id = %s",
                params + [user_id]
            )
        return self.find_by_id(user_id)

    # ------------------------------------------------------------------
    # Customers (tenant admin)
    # ------------------------------------------------------------------

    def find_customer(self, user_id: str, tenant_id: str) -> Optional[User]:
        row = self._fetch_one(f"""
            SELECT {USER_COLUMNS},
                (SELECT COUNT(*) FROM orders o WHERE o.user_id = u.id) as order_count
            FROM users u
            WHERE u.id = %s AND u.tenant_id = %s AND u.role = 'PATIENT'
        """, (user_id, tenant_id))
        return User(**row) if row else None

    def update_customer(self, user_id: str, tenant_id: str, fields: Dict[str, Any]) -> Optional[User]:
        set_clause, params = build_set_clause(fields, ('name', 'phone', 'is_active'))
        if set_clause:
            self._write(
                f"UPDATE users SET {set_clause}, updated_at = NOW() WHERE id = %s AND tenant_id = %s AND role = 'PATIENT'",
                params + [user_id, tenant_id]
            )
        return self.find_customer(user_id, tenant_id)

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> bool:
        return self._write("""
            UPDATE users SET reset_token_hash = %s, reset_token_expires_at = %s, updated_at = NOW()
            WHERE id = %s
        """, (token_hash, expires_at, user_id)) > 0

    def find_by_reset_token(self, token_hash: str) -> Optional[User]:
        """Active user holding this unexpired token"""
        row = self._fetch_one(f"""
            SELECT {USER_COLUMNS} FROM users u
            WHERE u.reset_token_hash = %s
              AND u.reset_token_expires_at > NOW()
              AND u.is_active = TRUE
        """, (token_hash,))
        return User(**row) if row else None

    def reset_password(self, user_id: str, password_hash: str) -> bool:
        """New password; the reset token is spent"""
        return self._write("""
            UPDATE users
            SET password_hash = %s, reset_token_hash = NULL, reset_token_expires_at = NULL, updated_at = NOW()
            WHERE id = %s
        """, (password_hash, user_id)) > 0
