"""
Webhook Domain Models

Tenants subscribe HTTP endpoints to platform events. Every delivery attempt is
recorded so admins can inspect failures.

Author: TM3
Date: 2025-11-12
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class WebhookEvents:
    # Tenant
    TENANT_CREATED = 'tenant.created'
    TENANT_UPDATED = 'tenant.updated'
    TENANT_ACTIVATED = 'tenant.activated'
    TENANT_DEACTIVATED = 'tenant.deactivated'

    # Product
    PRODUCT_CREATED = 'product.created'
    PRODUCT_UPDATED = 'product.updated'
    PRODUCT_DELETED = 'product.deleted'
    PRODUCT_LOW_STOCK = 'product.low_stock'
    PRODUCT_OUT_OF_STOCK = 'product.out_of_stock'

    # Order
    ORDER_CREATED = 'order.created'
    ORDER_CONFIRMED = 'order.confirmed'
    ORDER_SHIPPED = 'order.shipped'
    ORDER_DELIVERED = 'order.delivered'
    ORDER_CANCELLED = 'order.cancelled'

    # User
    USER_REGISTERED = 'user.registered'


WEBHOOK_EVENTS = sorted(
    value for name, value in vars(WebhookEvents).items()
    if not name.startswith('_')
)

# Order status -> event fired when a tenant admin moves an order there
ORDER_STATUS_EVENTS = {
    'PROCESSING': WebhookEvents.ORDER_CONFIRMED,
    'COMPLETED': WebhookEvents.ORDER_DELIVERED,
    'CANCELLED': WebhookEvents.ORDER_CANCELLED,
}


class Webhook(BaseModel):
    id: str
    tenant_id: str
    url: str
    events: List[str] = Field(default_factory=list)
    secret: str = Field(..., description="HMAC-SHA256 signing secret")
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From JOIN
    delivery_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self, include_secret: bool = False) -> dict:
        data = self.model_dump()
        if not include_secret:
            data['secret'] = '*' * 8 + self.secret[-4:]
        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class WebhookDelivery(BaseModel):
    id: str
    webhook_id: str
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    status_code: Optional[int] = None
    response: Optional[str] = None
    success: bool = False
    attempts: int = 1
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        if isinstance(data.get('created_at'), datetime):
            data['created_at'] = data['created_at'].isoformat()
        return data


def _check_events(events: Optional[List[str]]) -> Optional[List[str]]:
    if events is None:
        return events
    unknown = [event for event in events if event not in WEBHOOK_EVENTS]
    if unknown:
        raise ValueError(f"Unknown events: {', '.join(unknown)}")
    return events


def _check_url(url: Optional[str]) -> Optional[str]:
    if url is not None and not url.startswith(('http://', 'https://')):
        raise ValueError("url must start with http:// or https://")
    return url


class WebhookCreate(BaseModel):
    url: str
    events: List[str] = Field(..., min_length=1)
    description: Optional[str] = None

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        return _check_url(v)

    @field_validator('events')
    @classmethod
    def validate_events(cls, v):
        return _check_events(v)


class WebhookUpdate(BaseModel):
    url: Optional[str] = None
    events: Optional[List[str]] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        return _check_url(v)

    @field_validator('events')
    @classmethod
    def validate_events(cls, v):
        if v is not None and not v:
            raise ValueError("At least one event is required")
        return _check_events(v)
