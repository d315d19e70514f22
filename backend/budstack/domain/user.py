"""
User Domain Models

Author: TM3
Date: 2025-11-03
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime


class User(BaseModel):
    """
    Platform user: super admin, tenant admin or patient.

    password_hash is loaded for authentication only and never serialized.
    """

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Login e-mail, unique platform-wide")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    role: str = Field("PATIENT", description="SUPER_ADMIN, TENANT_ADMIN or PATIENT")
    tenant_id: Optional[str] = Field(None, description="Owning tenant (null for super admins)")
    is_active: bool = Field(True, description="Can log in")
    password_hash: Optional[str] = Field(None, exclude=True)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From JOINs
    order_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PatientRegistration(BaseModel):
    """Storefront sign-up form"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: Optional[str] = None
    phone: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class PasswordReset(BaseModel):
    """Admin-initiated reset; a random password is generated when omitted"""
    new_password: Optional[str] = Field(None, min_length=8)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Completes a reset with the token from the e-mailed link"""
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class CustomerUpdate(BaseModel):
    """Fields a tenant admin may change on a patient account"""
    name: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None
