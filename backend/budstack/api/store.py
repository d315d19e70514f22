"""
Storefront API Endpoints
Public store data plus the signed-in patient's cart and orders

Routes are scoped by store slug: /api/v1/store/{slug}/...

Author: TM3
Date: 2025-11-06
Updated: 2025-11-13 (checkout and order history)
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from budstack.api.deps import get_store
from budstack.core.auth import TokenUser, get_current_user
from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.domain.cart import AddToCartRequest, RemoveFromCartRequest
from budstack.domain.order import SubmitOrderRequest
from budstack.domain.tenant import Tenant
from budstack.domain.user import PatientRegistration
from budstack.services.auth_service import AuthService
from budstack.services.cart_service import CartService
from budstack.services.order_service import OrderService
from budstack.services.product_service import ProductService
from budstack.services.template_service import TemplateService
from budstack.services.tenant_service import TenantService, tenant_url

logger = logging.getLogger(__name__)

router = APIRouter()


def public_tenant(tenant: Tenant) -> dict:
    return {
        'id': tenant.id,
        'business_name': tenant.business_name,
        'subdomain': tenant.subdomain,
        'custom_domain': tenant.custom_domain,
        'country_code': tenant.country_code,
        'url': tenant_url(tenant),
        'branding': tenant.branding.model_dump() if tenant.branding else None,
    }


# ============================================================================
# Tenant resolution
# ============================================================================

@router.get("/resolve")
async def resolve_store(
    request: Request,
    host: Optional[str] = Query(None, description="Host to resolve (defaults to the request host)"),
    path: str = Query("/", description="Request path, /store/{slug} wins over the host")
):
    """Resolve the store for a host/path pair (path, subdomain, custom domain)"""
    try:
        tenant = TenantService().resolve_tenant(host or request.headers.get('host', ''), path)
        if not tenant:
            raise HTTPException(status_code=404, detail="Store not found")
        return {"status": "success", "data": public_tenant(tenant)}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resolving store: {str(e)}")


@router.get("/{slug}")
async def get_store_info(tenant: Tenant = Depends(get_store)):
    return {"status": "success", "data": public_tenant(tenant)}


@router.get("/{slug}/config")
async def get_storefront_config(tenant: Tenant = Depends(get_store)):
    """Template slug, merged settings and branding for rendering the store"""
    try:
        return {"status": "success", "data": TemplateService().resolve_storefront(tenant)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading storefront config: {str(e)}")


@router.get("/{slug}/cookie-consent")
async def get_cookie_consent(
    tenant: Tenant = Depends(get_store),
    country: Optional[str] = Query(None, min_length=2, max_length=2, description="Visitor's ISO country; defaults to the store's")
):
    """Consent model (opt-in or opt-out), banner text and default categories"""
    try:
        return {"status": "success", "data": TenantService().cookie_consent(tenant, country)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading cookie consent: {str(e)}")


# ============================================================================
# Catalogue
# ============================================================================

@router.get("/{slug}/products")
async def list_products(
    tenant: Tenant = Depends(get_store),
    search: Optional[str] = Query(None, description="Search by name or description"),
    strain_type: Optional[str] = Query(None, description="INDICA, SATIVA or HYBRID"),
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
):
    try:
        products, total = ProductService().list_storefront(
            tenant, search=search, strain_type=strain_type, category=category, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/{slug}/products/{product_id}")
async def get_product(product_id: str, tenant: Tenant = Depends(get_store)):
    """Product by id or slug with similar products"""
    try:
        result = ProductService().get_storefront_product(tenant, product_id)
        return {
            "status": "success",
            "data": result['product'].to_dict(),
            "similar": [product.to_dict() for product in result['similar']]
        }
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


# ============================================================================
# Patient accounts
# ============================================================================

@router.post("/{slug}/register", status_code=201)
async def register(
    body: PatientRegistration,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_store)
):
    try:
        result = AuthService(background_tasks=background_tasks).register_patient(tenant, body, headers=request.headers)
        return {"status": "success", "data": result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error registering: {str(e)}")


# ============================================================================
# Cart
# ============================================================================

@router.get("/{slug}/cart")
async def get_cart(tenant: Tenant = Depends(get_store), user: TokenUser = Depends(get_current_user)):
    try:
        cart = CartService().get_cart(user.id, tenant.id)
        return {"status": "success", "data": cart.to_dict()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cart: {str(e)}")


@router.post("/{slug}/cart/add")
async def add_to_cart(
    body: AddToCartRequest,
    tenant: Tenant = Depends(get_store),
    user: TokenUser = Depends(get_current_user)
):
    """Add packs of a product (size 2, 5 or 10 g) to the cart"""
    try:
        cart = CartService().add_item(user.id, tenant.id, body)
        return {"status": "success", "data": cart.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding to cart: {str(e)}")


@router.post("/{slug}/cart/remove")
async def remove_from_cart(
    body: RemoveFromCartRequest,
    tenant: Tenant = Depends(get_store),
    user: TokenUser = Depends(get_current_user)
):
    try:
        cart = CartService().remove_item(user.id, tenant.id, body)
        return {"status": "success", "data": cart.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing from cart: {str(e)}")


@router.post("/{slug}/cart/clear")
async def clear_cart(tenant: Tenant = Depends(get_store), user: TokenUser = Depends(get_current_user)):
    try:
        cart = CartService().clear(user.id, tenant.id)
        return {"status": "success", "data": cart.to_dict()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error clearing cart: {str(e)}")


# ============================================================================
# Orders
# ============================================================================

@router.post("/{slug}/orders/submit", status_code=201)
async def submit_order(
    body: SubmitOrderRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_store),
    user: TokenUser = Depends(get_current_user)
):
    """Place an order from the cart"""
    try:
        service = OrderService(background_tasks=background_tasks)
        order = service.submit_order(user, tenant, body.shipping_info, headers=request.headers)
        return {
            "status": "success",
            "message": "Order submitted successfully",
            "data": order.to_dict()
        }
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Order submission failed for {tenant.subdomain}: {e}")
        raise HTTPException(status_code=500, detail=f"Error submitting order: {str(e)}")


@router.get("/{slug}/orders")
async def list_my_orders(
    tenant: Tenant = Depends(get_store),
    user: TokenUser = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
):
    try:
        orders, total = OrderService().list_customer_orders(user.id, tenant.id, page=page, limit=limit)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": (page - 1) * limit,
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/{slug}/orders/{order_id}")
async def get_my_order(
    order_id: str,
    tenant: Tenant = Depends(get_store),
    user: TokenUser = Depends(get_current_user)
):
    try:
        order = OrderService().get_customer_order(order_id, user.id, tenant.id)
        return {"status": "success", "data": order.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")
