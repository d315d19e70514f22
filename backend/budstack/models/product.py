"""
Catálogo de productos (cepas) por tenant
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, DECIMAL, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budstack.core.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_products_tenant_slug"),
    )

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Dr. Green strain id when synced
    external_id = Column(String(255), index=True)

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    strain_type = Column(String(20), default="HYBRID")
    thc_content = Column(DECIMAL(5, 2))
    cbd_content = Column(DECIMAL(5, 2))

    # Price per gram
    price = Column(DECIMAL(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    stock_quantity = Column(Integer, nullable=False, default=0)
    image_url = Column(String(1024))

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="products")
