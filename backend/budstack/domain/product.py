"""
Product Domain Model

A cannabis strain sold by one tenant. Prices are per gram; the cart multiplies
by the selected pack size (2, 5 or 10 g).

Author: TM3
Date: 2025-11-05
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


STRAIN_TYPES = ('INDICA', 'SATIVA', 'HYBRID')

LOW_STOCK_THRESHOLD = 10

# Country -> catalogue currency for Dr. Green prices
CURRENCY_MAP = {
    'PT': 'EUR', 'ES': 'EUR', 'FR': 'EUR', 'DE': 'EUR', 'IT': 'EUR', 'NL': 'EUR',
    'BE': 'EUR', 'AT': 'EUR', 'IE': 'EUR', 'GR': 'EUR',
    'SA': 'ZAR',
    'UK': 'GBP', 'GB': 'GBP',
    'US': 'USD', 'CA': 'CAD', 'AU': 'AUD', 'NZ': 'NZD',
    'CH': 'CHF', 'SE': 'SEK', 'NO': 'NOK', 'DK': 'DKK', 'PL': 'PLN', 'CZ': 'CZK',
    'IL': 'ILS', 'BR': 'BRL', 'MX': 'MXN', 'AR': 'ARS', 'CL': 'CLP', 'CO': 'COP',
    'TH': 'THB', 'MY': 'MYR', 'SG': 'SGD', 'IN': 'INR', 'PK': 'PKR', 'PH': 'PHP',
    'ID': 'IDR', 'JP': 'JPY', 'KR': 'KRW', 'CN': 'CNY', 'HK': 'HKD', 'TW': 'TWD',
}
DEFAULT_CURRENCY = 'ZAR'


def currency_for_country(country_code: Optional[str]) -> str:
    return CURRENCY_MAP.get((country_code or '').upper(), DEFAULT_CURRENCY)


class Product(BaseModel):
    """
    Product domain model

    Fields:
        id: Product ID
        tenant_id: Owning tenant
        external_id: Dr. Green strain id (synced products)
        name / slug / description / category
        strain_type: INDICA, SATIVA or HYBRID
        thc_content / cbd_content: Percentages
        price: Price per gram
        currency: ISO currency
        stock_quantity: Grams in stock
        image_url: Product image
        is_active: Listed on the storefront
        sort_order: Manual ordering set by the tenant admin
    """

    id: str = Field(..., description="Product ID")
    tenant_id: str = Field(..., description="Owning tenant")
    external_id: Optional[str] = Field(None, description="Dr. Green strain id")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug, unique per tenant")
    description: Optional[str] = Field(None, description="Product description")
    category: Optional[str] = Field(None, description="Product category")
    strain_type: str = Field('HYBRID', description="INDICA, SATIVA or HYBRID")
    thc_content: Optional[Decimal] = Field(None, description="THC %", ge=0)
    cbd_content: Optional[Decimal] = Field(None, description="CBD %", ge=0)
    price: Decimal = Field(..., description="Price per gram", ge=0)
    currency: str = Field('EUR', description="Currency")
    stock_quantity: int = Field(0, description="Stock in grams", ge=0)
    image_url: Optional[str] = Field(None, description="Image URL")
    is_active: bool = Field(True, description="Listed on storefront")
    sort_order: int = Field(0, description="Manual sort order")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def is_available(self) -> bool:
        """Active and in stock, i.e. can be added to a cart"""
        return self.is_active and self.in_stock

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.stock_quantity <= LOW_STOCK_THRESHOLD

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['in_stock'] = self.in_stock
        data['is_low_stock'] = self.is_low_stock

        for field in ['price', 'thc_content', 'cbd_content']:
            if data.get(field) is not None:
                data[field] = float(data[field])

        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()

        return data


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    strain_type: str = Field('HYBRID', pattern=r"^(INDICA|SATIVA|HYBRID)$")
    thc_content: Optional[Decimal] = Field(None, ge=0, le=100)
    cbd_content: Optional[Decimal] = Field(None, ge=0, le=100)
    price: Decimal = Field(..., ge=0)
    currency: Optional[str] = None
    stock_quantity: int = Field(0, ge=0)
    image_url: Optional[str] = None
    is_active: bool = True
    external_id: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    strain_type: Optional[str] = Field(None, pattern=r"^(INDICA|SATIVA|HYBRID)$")
    thc_content: Optional[Decimal] = Field(None, ge=0, le=100)
    cbd_content: Optional[Decimal] = Field(None, ge=0, le=100)
    price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class ProductBulkAction(BaseModel):
    action: str = Field(..., pattern=r"^(activate|deactivate|delete)$")
    product_ids: List[str] = Field(..., min_length=1)


class ProductReorder(BaseModel):
    """Product ids in their new display order"""
    product_ids: List[str] = Field(..., min_length=1)
