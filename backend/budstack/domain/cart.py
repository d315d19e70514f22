"""
Cart Domain Models

One cart per (user, tenant). Items are stored denormalized so the cart can be
rendered without re-reading the catalogue.

Author: TM3
Date: 2025-11-06
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP


# Pack sizes in grams
VALID_SIZES = (2, 5, 10)

CENTS = Decimal('0.01')


class CartItem(BaseModel):
    """A product in a given pack size"""

    product_id: str = Field(..., description="Product ID")
    product_name: str = Field(..., description="Product name when added")
    unit_price: Decimal = Field(..., description="Price per gram when added", ge=0)
    quantity: int = Field(..., description="Number of packs", ge=1)
    size: int = Field(..., description="Pack size in grams")
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def pack_price(self) -> Decimal:
        return self.unit_price * self.size

    @property
    def line_total(self) -> Decimal:
        return (self.pack_price * self.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['unit_price'] = float(self.unit_price)
        data['pack_price'] = float(self.pack_price)
        data['line_total'] = float(self.line_total)
        return data

    def to_storage(self) -> dict:
        """JSON-safe representation for the carts.items column"""
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'unit_price': str(self.unit_price),
            'quantity': self.quantity,
            'size': self.size,
            'image_url': self.image_url,
        }


class Cart(BaseModel):
    id: Optional[str] = Field(None, description="Cart ID (None until first write)")
    user_id: str = Field(..., description="Cart owner")
    tenant_id: str = Field(..., description="Store the cart belongs to")
    items: List[CartItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> Decimal:
        total = sum((item.line_total for item in self.items), Decimal('0'))
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, product_id: str, size: int) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id and item.size == size:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'tenant_id': self.tenant_id,
            'items': [item.to_dict() for item in self.items],
            'total_quantity': self.total_quantity,
            'total_amount': float(self.total_amount),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class AddToCartRequest(BaseModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    size: Optional[int] = None


class RemoveFromCartRequest(BaseModel):
    product_id: Optional[str] = None
    size: Optional[int] = None
