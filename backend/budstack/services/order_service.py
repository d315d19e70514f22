"""
Order Service - checkout, order management and payment callbacks

Handles:
- Checkout: cart -> order, cart cleared in the same transaction
- Customer order history
- Tenant admin status changes, bulk actions and notes
- Dr. Green fiat and crypto payment callbacks

Author: TM3
Date: 2025-11-13
"""
import random
import string
import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List, Mapping, Tuple

from fastapi import BackgroundTasks

from budstack.core.auth import TokenUser
from budstack.core.config import settings
from budstack.core.database import transaction
from budstack.core.exceptions import (
    BudStackError, NotFoundError, ValidationError,
)
from budstack.domain.audit import AuditActions
from budstack.domain.cart import CENTS
from budstack.domain.order import (
    Order, OrderItem, ShippingInfo,
    BULK_ORDER_ACTIONS, ORDER_STATUSES,
)
from budstack.domain.product import currency_for_country
from budstack.domain.tenant import Tenant
from budstack.domain.webhook import WebhookEvents, ORDER_STATUS_EVENTS
from budstack.repositories.cart_repository import CartRepository
from budstack.repositories.order_repository import OrderRepository
from budstack.repositories.tenant_repository import TenantRepository
from budstack.services.audit_service import AuditService
from budstack.services.credentials_service import CredentialsService
from budstack.services.email_service import EmailService
from budstack.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = 'BS'
ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits

PAYMENT_FIAT = 'fiat'
PAYMENT_CRYPTO = 'crypto'

CRYPTO_PAID_CODES = (1, 2)
CRYPTO_FAILED_CODES = (4, 5)


def generate_order_number(now: Optional[datetime] = None) -> str:
    """BS-YYYYMMDD-XXXXXX"""
    now = now or datetime.now(timezone.utc)
    suffix = ''.join(random.choices(ORDER_NUMBER_ALPHABET, k=6))
    return f"{ORDER_NUMBER_PREFIX}-{now.strftime('%Y%m%d')}-{suffix}"


def fiat_payment_status(payload: Dict[str, Any]) -> str:
    status = str(payload.get('status') or '').upper()
    try:
        code = int(payload.get('code'))
    except (TypeError, ValueError):
        code = None

    if status == 'OK' and code == 200:
        return 'PAID'
    if status == 'FAILED' or (code is not None and code >= 400):
        return 'FAILED'
    return 'PENDING'


def crypto_payment_status(payload: Dict[str, Any]) -> str:
    try:
        code = int(payload.get('status_code'))
    except (TypeError, ValueError):
        return 'PENDING'

    if code in CRYPTO_PAID_CODES:
        return 'PAID'
    if code in CRYPTO_FAILED_CODES:
        return 'FAILED'
    return 'PENDING'


class OrderService:

    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        cart_repository: Optional[CartRepository] = None,
        tenant_repository: Optional[TenantRepository] = None,
        audit_service: Optional[AuditService] = None,
        webhook_service: Optional[WebhookService] = None,
        email_service: Optional[EmailService] = None,
        credentials_service: Optional[CredentialsService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.repository = repository or OrderRepository()
        self.cart_repository = cart_repository or CartRepository()
        self.tenant_repository = tenant_repository or TenantRepository()
        self.audit_service = audit_service or AuditService()
        self.webhook_service = webhook_service or WebhookService()
        self.email_service = email_service or EmailService()
        self.credentials_service = credentials_service or CredentialsService(self.tenant_repository)
        self.background_tasks = background_tasks

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def submit_order(
        self,
        user: TokenUser,
        tenant: Tenant,
        shipping_info: Optional[ShippingInfo],
        headers: Mapping[str, str] = None
    ) -> Order:
        """
        Turn the user's cart in this store into an order

        Raises:
            ValidationError: shipping info incomplete, cart empty
        """
        if shipping_info is None:
            raise ValidationError("Missing required shipping information")
        missing = shipping_info.missing_fields()
        if missing:
            raise ValidationError(f"Missing required shipping information: {', '.join(missing)}")

        with transaction() as conn:
            cart = self.cart_repository.find(user.id, tenant.id, conn=conn)
            if cart is None or cart.is_empty:
                raise ValidationError("Cart is empty")

            subtotal = cart.total_amount
            shipping_cost = Decimal(str(settings.SHIPPING_COST)).quantize(CENTS)
            total = subtotal + shipping_cost

            order_number = generate_order_number()
            while self.repository.order_number_exists(order_number, conn=conn):
                order_number = generate_order_number()

            items = [
                OrderItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    size=item.size,
                    price=item.pack_price,
                )
                for item in cart.items
            ]

            order = self.repository.create(
                order_number=order_number,
                tenant_id=tenant.id,
                user_id=user.id,
                subtotal=subtotal,
                shipping_cost=shipping_cost,
                total=total,
                currency=currency_for_country(tenant.country_code),
                shipping_info=shipping_info.model_dump(),
                items=items,
                payment_nonce=secrets.token_hex(16),
                conn=conn,
            )
            self.cart_repository.delete(user.id, tenant.id, conn=conn)

        logger.info(f"Order {order.order_number} created for tenant {tenant.subdomain}, total {total}")

        self.audit_service.log(
            AuditActions.ORDER_CREATED, 'Order', order.id,
            user=user, tenant_id=tenant.id,
            metadata={'order_number': order.order_number, 'total': float(total), 'items': order.item_count},
            headers=headers,
        )
        self.webhook_service.dispatch(self.background_tasks, WebhookEvents.ORDER_CREATED, tenant.id, {
            'order_id': order.id,
            'order_number': order.order_number,
            'total': float(total),
            'user_id': user.id,
            'user_email': user.email,
        })
        if self.background_tasks is not None:
            self.background_tasks.add_task(
                self.email_service.send_order_confirmation,
                user.email, tenant.business_name, order.order_number, float(total), order.currency
            )
            if tenant.has_drgreen_credentials:
                self.background_tasks.add_task(self.forward_to_drgreen, tenant, order)

        return order

    async def forward_to_drgreen(self, tenant: Tenant, order: Order) -> Optional[str]:
        """Register the order with Dr. Green; keeps the local order either way"""
        try:
            connector = self.credentials_service.get_connector(tenant)
            response = await connector.create_order({
                'orderNumber': order.order_number,
                'shippingInfo': order.shipping_info,
                'items': [
                    {'strainId': item.product_id, 'quantity': item.quantity, 'size': item.size}
                    for item in order.items
                ],
            })
        except BudStackError as e:
            logger.warning(f"Could not forward order {order.order_number} to Dr. Green: {e}")
            return None

        data = response.get('data') or {}
        external_id = data.get('id')
        if external_id:
            self.repository.set_external_reference(order.id, external_id, data.get('invoiceNumber'))
            logger.info(f"Order {order.order_number} registered with Dr. Green as {external_id}")
        return external_id

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    def list_customer_orders(self, user_id: str, tenant_id: str, page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        return self.repository.find_all(
            tenant_id=tenant_id, user_id=user_id, limit=limit, offset=(page - 1) * limit
        )

    def get_customer_order(self, order_id: str, user_id: str, tenant_id: str) -> Order:
        order = self.repository.find_by_id(order_id, tenant_id=tenant_id, user_id=user_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    # ------------------------------------------------------------------
    # Tenant admin
    # ------------------------------------------------------------------

    def list(self, tenant_id: str, **filters) -> Tuple[List[Order], int]:
        return self.repository.find_all(tenant_id=tenant_id, **filters)

    def get(self, order_id: str, tenant_id: str) -> Order:
        order = self.repository.find_by_id(order_id, tenant_id=tenant_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def update_status(self, order_id: str, tenant_id: str, status: str, user: TokenUser, headers: Mapping[str, str] = None) -> Order:
        status = (status or '').upper()
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")

        order = self.get(order_id, tenant_id)
        if order.status == status:
            return order

        self.repository.update_status(order_id, tenant_id, status)

        action = AuditActions.ORDER_CANCELLED if status == 'CANCELLED' else AuditActions.ORDER_STATUS_CHANGED
        self.audit_service.log(
            action, 'Order', order_id,
            user=user, tenant_id=tenant_id,
            metadata={'order_number': order.order_number, 'previous_status': order.status, 'new_status': status},
            headers=headers,
        )
        self._status_webhook(order, status)
        return order.model_copy(update={'status': status})

    def bulk_action(self, tenant_id: str, action: str, order_ids: List[str], user: TokenUser, headers: Mapping[str, str] = None) -> List[str]:
        """
        Raises:
            ValidationError: unknown action (bulk cancel is not offered)
            NotFoundError: none of the ids belong to the tenant
        """
        status = BULK_ORDER_ACTIONS.get(action)
        if status is None:
            raise ValidationError(f"Invalid action. Must be one of: {', '.join(BULK_ORDER_ACTIONS)}")

        updated_ids = self.repository.bulk_update_status(tenant_id, order_ids, status)
        if not updated_ids:
            raise NotFoundError("No valid orders found")

        self.audit_service.log(
            AuditActions.ORDER_STATUS_CHANGED, 'Order', None,
            user=user, tenant_id=tenant_id,
            metadata={'action': action, 'order_ids': updated_ids, 'count': len(updated_ids)},
            headers=headers,
        )
        event = ORDER_STATUS_EVENTS.get(status)
        for order_id in updated_ids:
            self.webhook_service.dispatch(self.background_tasks, event, tenant_id, {
                'order_id': order_id, 'status': status,
            })
        return updated_ids

    def update_notes(self, order_id: str, tenant_id: str, admin_notes: str, user: TokenUser, headers: Mapping[str, str] = None) -> Order:
        order = self.get(order_id, tenant_id)
        self.repository.update_admin_notes(order_id, tenant_id, admin_notes)
        self.audit_service.log(
            AuditActions.ORDER_UPDATED, 'Order', order_id,
            user=user, tenant_id=tenant_id,
            metadata={'order_number': order.order_number, 'field': 'admin_notes'},
            headers=headers,
        )
        return order.model_copy(update={'admin_notes': admin_notes})

    def _status_webhook(self, order: Order, status: str) -> None:
        event = ORDER_STATUS_EVENTS.get(status)
        if event:
            self.webhook_service.dispatch(self.background_tasks, event, order.tenant_id, {
                'order_id': order.id,
                'order_number': order.order_number,
                'status': status,
                'payment_status': order.payment_status,
            })

    # ------------------------------------------------------------------
    # Payment callbacks
    # ------------------------------------------------------------------

    def handle_fiat_callback(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Card payment result; the order nonce comes back in `custom` and the
        provider invoice in `payment_id`.

        Raises:
            ValidationError: no nonce
            NotFoundError: unknown nonce
        """
        nonce = payload.get('custom')
        if not nonce:
            self.repository.log_payment_callback(PAYMENT_FIAT, payload, error='Missing order reference')
            raise ValidationError("Missing order reference")

        order = self.repository.find_by_payment_nonce(nonce)
        if not order:
            self.repository.log_payment_callback(PAYMENT_FIAT, payload, error='Order not found')
            raise NotFoundError("Order not found")

        payment_status = fiat_payment_status(payload)
        invoice_number = payload.get('payment_id') or payload.get('invoice')
        return self._apply_payment(order, payment_status, PAYMENT_FIAT, payload, invoice_number=invoice_number)

    def handle_crypto_callback(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Crypto payment result; the Dr. Green order id comes in `custom_data2`"""
        external_id = payload.get('custom_data2')
        if not external_id:
            self.repository.log_payment_callback(PAYMENT_CRYPTO, payload, error='Missing order reference')
            raise ValidationError("Missing order reference")

        order = self.repository.find_by_external_id(external_id)
        if not order:
            self.repository.log_payment_callback(
                PAYMENT_CRYPTO, payload, drgreen_order_id=external_id, error='Order not found'
            )
            raise NotFoundError("Order not found")

        payment_status = crypto_payment_status(payload)
        return self._apply_payment(order, payment_status, PAYMENT_CRYPTO, payload)

    def _apply_payment(
        self,
        order: Order,
        payment_status: str,
        webhook_type: str,
        payload: Dict[str, Any],
        invoice_number: Optional[str] = None
    ) -> Dict[str, Any]:
        new_status = None
        if payment_status == 'PAID' and order.status == 'PENDING':
            new_status = 'PROCESSING'

        self.repository.update_payment(
            order.id,
            payment_status,
            status=new_status,
            invoice_number=invoice_number,
            clear_nonce=payment_status == 'PAID',
        )
        self.repository.log_payment_callback(
            webhook_type, payload,
            tenant_id=order.tenant_id,
            order_id=order.id,
            drgreen_order_id=order.external_id,
            processed=True,
        )

        logger.info(f"{webhook_type} payment callback: order {order.order_number} is {payment_status}")

        self.audit_service.log(
            AuditActions.ORDER_PAYMENT_UPDATED, 'Order', order.id,
            tenant_id=order.tenant_id,
            metadata={
                'order_number': order.order_number,
                'payment_type': webhook_type,
                'previous_payment_status': order.payment_status,
                'payment_status': payment_status,
            },
        )

        if payment_status == 'PAID':
            self._status_webhook(order.model_copy(update={'payment_status': 'PAID'}), 'PROCESSING')
        elif payment_status == 'FAILED':
            self._status_webhook(order.model_copy(update={'payment_status': 'FAILED'}), 'CANCELLED')

        return {
            'order_id': order.id,
            'order_number': order.order_number,
            'payment_status': payment_status,
            'status': new_status or order.status,
        }
