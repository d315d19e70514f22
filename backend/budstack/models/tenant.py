"""
Tenant tables: dispensaries and their branding
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budstack.core.database import Base


class Tenant(Base):
    """
    Una dispensaria en la plataforma
    """
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True)
    business_name = Column(String(255), nullable=False)
    subdomain = Column(String(63), nullable=False, unique=True, index=True)
    custom_domain = Column(String(255), unique=True, index=True)
    nft_token_id = Column(String(255))
    country_code = Column(String(2), nullable=False, default="PT")

    # New tenants wait for super admin approval
    is_active = Column(Boolean, nullable=False, default=False, index=True)

    template_id = Column(String(36), ForeignKey("templates.id"))
    active_tenant_template_id = Column(String(36))
    settings = Column(JSONB, nullable=False, server_default="{}")

    # Dr. Green credentials, secret encrypted (iv:tag:ciphertext)
    drgreen_api_key = Column(String(255))
    drgreen_secret_key = Column(String(4096))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    branding = relationship("TenantBranding", back_populates="tenant", uselist=False, cascade="all, delete-orphan")
    users = relationship("User", back_populates="tenant")
    products = relationship("Product", back_populates="tenant", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="tenant")


class TenantBranding(Base):
    __tablename__ = "tenant_branding"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    primary_color = Column(String(20), nullable=False, default="#10b981")
    secondary_color = Column(String(20), nullable=False, default="#059669")
    accent_color = Column(String(20), nullable=False, default="#34d399")
    font_family = Column(String(100), nullable=False, default="Inter")
    logo_url = Column(String(1024))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="branding")
