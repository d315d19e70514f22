"""
Modelos relacionados con carritos y órdenes
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, DECIMAL, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budstack.core.database import Base


class Cart(Base):
    """
    Un carrito por (usuario, tenant); los items viven en JSONB
    """
    __tablename__ = "carts"
    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_carts_user_tenant"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    items = Column(JSONB, nullable=False, server_default="[]")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(50), nullable=False, unique=True, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Montos
    subtotal = Column(DECIMAL(12, 2), nullable=False)
    shipping_cost = Column(DECIMAL(12, 2), nullable=False, default=0)
    total = Column(DECIMAL(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")

    # Estados
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    payment_status = Column(String(20), nullable=False, default="PENDING")

    shipping_info = Column(JSONB, nullable=False, server_default="{}")
    admin_notes = Column(Text)

    # Dr. Green order id and payment nonce (fiat callbacks)
    external_id = Column(String(255), index=True)
    payment_nonce = Column(String(255), index=True)
    invoice_number = Column(String(255))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"), index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    size = Column(Integer, nullable=False)

    # Price of one unit of `size` grams at order time
    price = Column(DECIMAL(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class DrGreenWebhookLog(Base):
    """
    Callbacks de pago recibidos desde Dr. Green
    """
    __tablename__ = "drgreen_webhook_logs"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), index=True)
    webhook_type = Column(String(20), nullable=False)
    order_id = Column(String(36))
    drgreen_order_id = Column(String(255))
    payload = Column(JSONB, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True))
    error = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
