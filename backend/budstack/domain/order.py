"""
Order Domain Models

Orders placed by patients on a tenant storefront.

Author: TM3
Date: 2025-11-06
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal


ORDER_STATUSES = ('PENDING', 'PROCESSING', 'COMPLETED', 'CANCELLED')
PAYMENT_STATUSES = ('PENDING', 'PAID', 'FAILED', 'REFUNDED')

# Bulk actions available to tenant admins. Cancelling is per-order only.
BULK_ORDER_ACTIONS = {
    'mark-processing': 'PROCESSING',
    'mark-completed': 'COMPLETED',
}

SHIPPING_REQUIRED_FIELDS = ('address1', 'city', 'state', 'postal_code', 'country')


class ShippingInfo(BaseModel):
    """Delivery address; required fields are checked by OrderService"""
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [name for name in SHIPPING_REQUIRED_FIELDS if not getattr(self, name)]


class OrderItem(BaseModel):
    """
    Order line

    Fields:
        product_id: Catalogue product (None if since deleted)
        product_name: Name at order time
        quantity: Number of packs
        size: Pack size in grams
        price: Price of one pack at order time
    """

    id: Optional[str] = Field(None, description="Order item ID")
    order_id: Optional[str] = Field(None, description="Parent order ID")
    product_id: Optional[str] = Field(None, description="Product ID")
    product_name: str = Field(..., description="Product name at order time")
    quantity: int = Field(..., description="Packs ordered", ge=1)
    size: int = Field(..., description="Pack size in grams")
    price: Decimal = Field(..., description="Pack price", ge=0)

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['price'] = float(self.price)
        data['line_total'] = float(self.line_total)
        return data


class Order(BaseModel):
    """
    Order domain model

    Fields:
        id / order_number: Internal id and human-readable BS-YYYYMMDD-XXXXXX
        tenant_id / user_id: Store and customer
        subtotal / shipping_cost / total: total = subtotal + shipping_cost
        status: PENDING, PROCESSING, COMPLETED, CANCELLED
        payment_status: PENDING, PAID, FAILED, REFUNDED
        shipping_info: Delivery address
        admin_notes: Internal notes from the tenant admin
        external_id: Dr. Green order id
        payment_nonce: Reference sent to the fiat payment provider

        # From JOINs
        customer_email / customer_name
        items
    """

    id: str = Field(..., description="Order ID")
    order_number: str = Field(..., description="Order number")
    tenant_id: str = Field(..., description="Tenant ID")
    user_id: str = Field(..., description="Customer user ID")

    subtotal: Decimal = Field(..., description="Items total", ge=0)
    shipping_cost: Decimal = Field(Decimal('0'), description="Shipping", ge=0)
    total: Decimal = Field(..., description="Order total", ge=0)
    currency: str = Field('EUR', description="Currency")

    status: str = Field('PENDING', description="Order status")
    payment_status: str = Field('PENDING', description="Payment status")

    shipping_info: Dict[str, Any] = Field(default_factory=dict)
    admin_notes: Optional[str] = None
    external_id: Optional[str] = None
    payment_nonce: Optional[str] = Field(None, exclude=True)
    invoice_number: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    customer_email: Optional[str] = None
    customer_name: Optional[str] = None

    items: List[OrderItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == 'PAID'

    def to_dict(self) -> dict:
        data = self.model_dump()

        data['item_count'] = self.item_count
        data['total_quantity'] = self.total_quantity
        data['is_paid'] = self.is_paid

        for field in ['subtotal', 'shipping_cost', 'total']:
            if data.get(field) is not None:
                data[field] = float(data[field])

        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()

        data['items'] = [item.to_dict() for item in self.items]

        return data


class SubmitOrderRequest(BaseModel):
    shipping_info: Optional[ShippingInfo] = None


class OrderStatusUpdate(BaseModel):
    status: str


class OrderBulkAction(BaseModel):
    action: str
    order_ids: List[str] = Field(..., min_length=1)


class AdminNotesUpdate(BaseModel):
    admin_notes: str = ""
