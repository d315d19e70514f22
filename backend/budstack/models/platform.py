"""
Platform-wide tables: audit trail, outgoing webhooks, platform settings
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from budstack.core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(36))
    user_id = Column(String(36))
    user_email = Column(String(255))
    tenant_id = Column(String(36), index=True)
    metadata_ = Column("metadata", JSONB)
    ip_address = Column(String(100))
    user_agent = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    events = Column(JSONB, nullable=False, server_default="[]")
    secret = Column(String(128), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class WebhookDelivery(Base):
    __tablename__ = "webhook_deliveries"

    id = Column(String(36), primary_key=True)
    webhook_id = Column(String(36), ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False, index=True)
    event = Column(String(100), nullable=False)
    payload = Column(JSONB, nullable=False)
    status_code = Column(Integer)
    response = Column(Text)
    success = Column(Boolean, nullable=False, default=False)
    attempts = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class PlatformSettings(Base):
    """
    Singleton row (id = 'platform') with platform branding
    """
    __tablename__ = "platform_settings"

    id = Column(String(36), primary_key=True, default="platform")
    business_name = Column(String(255), nullable=False, default="BudStack")
    tagline = Column(String(500))
    primary_color = Column(String(20), nullable=False, default="#10b981")
    secondary_color = Column(String(20), nullable=False, default="#059669")
    accent_color = Column(String(20), nullable=False, default="#34d399")
    font_family = Column(String(100), nullable=False, default="Inter")
    heading_font_family = Column(String(100))
    template = Column(String(100), default="modern")
    logo_url = Column(String(1024))
    favicon_url = Column(String(1024))

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
