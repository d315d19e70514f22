"""
Authentication for the BudStack API
Issues and validates HS256 session tokens and provides user context

Author: TM3
Date: 2025-11-03
"""
from typing import Optional
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, ExpiredSignatureError, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel

from budstack.core.config import settings


# Bearer scheme; missing headers are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_TENANT_ADMIN = "TENANT_ADMIN"
ROLE_PATIENT = "PATIENT"

# Role hierarchy: SUPER_ADMIN > TENANT_ADMIN > PATIENT
ROLE_HIERARCHY = {
    ROLE_SUPER_ADMIN: 3,
    ROLE_TENANT_ADMIN: 2,
    ROLE_PATIENT: 1,
}


class TokenUser(BaseModel):
    """User data extracted from JWT token"""
    id: str
    email: str
    name: Optional[str] = None
    role: str = ROLE_PATIENT
    tenant_id: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


JWT_ALGORITHM = "HS256"


def _signing_key() -> str:
    if not settings.AUTH_SECRET:
        raise ValueError("AUTH_SECRET is not set")
    return settings.AUTH_SECRET


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    tenant_id: Optional[str] = None,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a session token.

    Claims: sub, email, name, role, tenant_id (None for super admins), iat, exp.
    Lifetime defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": user_id,
        "email": email,
        "name": name,
        "role": role,
        "tenant_id": tenant_id,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + lifetime).timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Claims of a valid session token; 401 when expired or malformed"""
    try:
        return jwt.decode(token, _signing_key(), algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as e:
        raise _unauthorized(f"Invalid token: {e}")


def user_from_claims(claims: dict) -> Optional[TokenUser]:
    if not claims.get("sub") or not claims.get("email"):
        return None
    return TokenUser(
        id=claims["sub"],
        email=claims["email"],
        name=claims.get("name"),
        role=claims.get("role") or ROLE_PATIENT,
        tenant_id=claims.get("tenant_id"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """Signed-in user from the bearer token"""
    if credentials is None:
        raise _unauthorized("Authentication required")

    user = user_from_claims(decode_token(credentials.credentials))
    if user is None:
        raise _unauthorized("Token is missing the user id or e-mail")
    return user


def require_role(minimum_role: str):
    """
    Dependency factory: the user must hold minimum_role or a higher one.

        @router.get("/tenants")
        async def list_tenants(user: TokenUser = Depends(require_super_admin)):
            ...
    """
    required_rank = ROLE_HIERARCHY[minimum_role]

    async def check_role(user: TokenUser = Depends(get_current_user)) -> TokenUser:
        if ROLE_HIERARCHY.get(user.role, 0) < required_rank:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{minimum_role} role required"
            )
        return user

    return check_role


require_super_admin = require_role(ROLE_SUPER_ADMIN)
require_tenant_admin = require_role(ROLE_TENANT_ADMIN)


def get_admin_tenant_id(user: TokenUser) -> str:
    """Tenant a tenant-admin request operates on; admins without a tenant get 400"""
    if not user.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No tenant associated with this account"
        )
    return user.tenant_id
