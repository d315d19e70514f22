"""
Storefront templates and per-tenant customized copies
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from budstack.core.database import Base


class Template(Base):
    """
    Base template catalog, managed by super admins
    """
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text)
    category = Column(String(100))
    version = Column(String(50), default="1.0.0")
    author = Column(String(255))
    tags = Column(JSONB, nullable=False, server_default="[]")
    preview_url = Column(String(1024))
    thumbnail_url = Column(String(1024))
    github_url = Column(String(1024))

    # template.config.json and defaults.json contents
    config = Column(JSONB, nullable=False, server_default="{}")
    defaults = Column(JSONB, nullable=False, server_default="{}")

    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class TenantTemplate(Base):
    """
    Copia editable de un template base para un tenant
    """
    __tablename__ = "tenant_templates"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    base_template_id = Column(String(36), ForeignKey("templates.id"), nullable=False)
    template_name = Column(String(255), nullable=False)

    design_system = Column(JSONB, nullable=False, server_default="{}")
    page_content = Column(JSONB, nullable=False, server_default="{}")
    navigation = Column(JSONB, nullable=False, server_default="{}")
    footer = Column(JSONB, nullable=False, server_default="{}")
    custom_css = Column(Text)
    logo_url = Column(String(1024))
    hero_image_url = Column(String(1024))
    favicon_url = Column(String(1024))

    # Drafts expire 24h after creation unless published
    is_draft = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), index=True)
    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
