"""
Cart Service - patient carts per store

Author: TM3
Date: 2025-11-06
"""
import logging
from typing import Optional

from budstack.core.exceptions import NotFoundError, ValidationError
from budstack.domain.cart import Cart, CartItem, AddToCartRequest, RemoveFromCartRequest, VALID_SIZES
from budstack.repositories.cart_repository import CartRepository
from budstack.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class CartService:

    def __init__(
        self,
        repository: Optional[CartRepository] = None,
        product_repository: Optional[ProductRepository] = None
    ):
        self.repository = repository or CartRepository()
        self.product_repository = product_repository or ProductRepository()

    def get_cart(self, user_id: str, tenant_id: str) -> Cart:
        """The stored cart, or an empty one (not persisted)"""
        return self.repository.find(user_id, tenant_id) or Cart(user_id=user_id, tenant_id=tenant_id)

    def add_item(self, user_id: str, tenant_id: str, request: AddToCartRequest) -> Cart:
        """
        Add packs of a product; same product and size merge into one line

        Raises:
            ValidationError: missing product, quantity < 1, size not 2/5/10,
                product inactive or out of stock
            NotFoundError: product not in this store
        """
        if not request.product_id:
            raise ValidationError("product_id is required")
        if request.quantity is None or request.quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if request.size not in VALID_SIZES:
            raise ValidationError(f"Size must be one of {', '.join(str(size) for size in VALID_SIZES)} grams")

        product = self.product_repository.find_by_id(request.product_id, tenant_id)
        if not product:
            raise NotFoundError("Product not found")
        if not product.is_active:
            raise ValidationError("Product is not available")
        if not product.in_stock:
            raise ValidationError("Product is out of stock")

        cart = self.get_cart(user_id, tenant_id)
        existing = cart.find_item(product.id, request.size)
        if existing:
            existing.quantity += request.quantity
        else:
            cart.items.append(CartItem(
                product_id=product.id,
                product_name=product.name,
                unit_price=product.price,
                quantity=request.quantity,
                size=request.size,
                image_url=product.image_url,
            ))

        return self.repository.save(cart)

    def remove_item(self, user_id: str, tenant_id: str, request: RemoveFromCartRequest) -> Cart:
        """Drop a product's lines, or only the given size"""
        if not request.product_id:
            raise ValidationError("product_id is required")

        cart = self.get_cart(user_id, tenant_id)
        remaining = [
            item for item in cart.items
            if not (item.product_id == request.product_id and (request.size is None or item.size == request.size))
        ]
        if len(remaining) == len(cart.items):
            raise NotFoundError("Item not in cart")

        cart.items = remaining
        return self.repository.save(cart)

    def clear(self, user_id: str, tenant_id: str) -> Cart:
        self.repository.delete(user_id, tenant_id)
        return Cart(user_id=user_id, tenant_id=tenant_id)
