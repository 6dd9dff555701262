"""FastAPI routes for the Marketplace — products, carts, orders and flash sales.

Each service call opens its own domain context and unit of work; the app's
middleware also wraps every request in the domain context.
"""

from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import current_admin, current_merchant, current_user, get_marketplace
from marketplace.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartResponse,
    CartSummaryResponse,
    CartValidationResponse,
    CheckoutRequest,
    CreateOrderRequest,
    FlashSaleAnalyticsResponse,
    FlashSaleListResponse,
    FlashSalePageResponse,
    FlashSaleRequest,
    FlashSaleResponse,
    MerchantOrderPageResponse,
    OrderListResponse,
    OrderResponse,
    ProductResponse,
    RegisterProductRequest,
    StatusResponse,
    TrackingResponse,
    UpdateCartItemRequest,
    UpdateFlashSaleRequest,
    UpdateOrderStatusRequest,
)
from marketplace.cart.aggregator import AddToCart, UpdateCartItem
from marketplace.flash_sale.management import CreateFlashSale, UpdateFlashSale
from marketplace.order.placement import Address, OrderLine, PlaceOrder
from marketplace.product.management import RegisterProduct
from marketplace.services import Marketplace

# ---------------------------------------------------------------------------
# Product Router (catalogue stand-in, admin only)
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductResponse)
async def register_product(
    body: RegisterProductRequest,
    _admin: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> ProductResponse:
    product = marketplace.catalogue.register(RegisterProduct(**body.model_dump()))
    return ProductResponse.build(product)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, marketplace: Marketplace = Depends(get_marketplace)) -> ProductResponse:
    return ProductResponse.build(marketplace.catalogue.get(product_id))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartResponse:
    return CartResponse.build(marketplace.carts.view(user_id))


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def get_cart_summary(
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartSummaryResponse:
    return CartSummaryResponse.build(marketplace.carts.summary(user_id))


@cart_router.post("/items", status_code=201, response_model=CartResponse)
async def add_cart_item(
    body: AddToCartRequest,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartResponse:
    marketplace.carts.add_item(user_id, AddToCart(product_id=body.product_id, quantity=body.quantity))
    return CartResponse.build(marketplace.carts.view(user_id))


@cart_router.put("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: str,
    body: UpdateCartItemRequest,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartResponse:
    marketplace.carts.update_item(user_id, UpdateCartItem(item_id=item_id, quantity=body.quantity))
    return CartResponse.build(marketplace.carts.view(user_id))


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: str,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartResponse:
    marketplace.carts.remove_item(user_id, item_id)
    return CartResponse.build(marketplace.carts.view(user_id))


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> StatusResponse:
    marketplace.carts.clear(user_id)
    return StatusResponse()


@cart_router.post("/validate", response_model=CartValidationResponse)
async def validate_cart(
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> CartValidationResponse:
    return CartValidationResponse.build(marketplace.carts.validate_for_checkout(user_id))


@cart_router.post("/checkout", status_code=201, response_model=OrderResponse)
async def checkout_cart(
    body: CheckoutRequest,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderResponse:
    order = marketplace.checkout.checkout(
        user_id,
        shipping_address=Address(**body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        notes=body.notes,
    )
    return OrderResponse.build(order)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderListResponse:
    orders = marketplace.lifecycle.list_orders(user_id)
    return OrderListResponse(count=len(orders), data=[OrderResponse.build(order) for order in orders])


# Declared before "/{order_id}" so these paths are never taken for an id
@order_router.get("/track/{order_number}", response_model=TrackingResponse)
async def track_order(order_number: str, marketplace: Marketplace = Depends(get_marketplace)) -> TrackingResponse:
    return TrackingResponse.build(marketplace.lifecycle.track(order_number))


@order_router.get("/merchant", response_model=MerchantOrderPageResponse)
async def list_merchant_orders(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    merchant_id: str = Depends(current_merchant),
    marketplace: Marketplace = Depends(get_marketplace),
) -> MerchantOrderPageResponse:
    return MerchantOrderPageResponse.build(
        marketplace.lifecycle.list_merchant_orders(merchant_id, status=status, page=page, limit=limit)
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderResponse:
    return OrderResponse.build(marketplace.lifecycle.get_order(user_id, order_id))


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(
    body: CreateOrderRequest,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderResponse:
    command = PlaceOrder(
        items=[OrderLine(product_id=line.product_id, quantity=line.quantity) for line in body.items],
        shipping_address=Address(**body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        notes=body.notes,
    )
    return OrderResponse.build(marketplace.orders.create_order(user_id, command))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderResponse:
    order = marketplace.lifecycle.update_status(
        user_id,
        order_id,
        body.status,
        note=body.note,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
    )
    return OrderResponse.build(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    user_id: str = Depends(current_user),
    marketplace: Marketplace = Depends(get_marketplace),
) -> OrderResponse:
    reason = body.reason if body else ""
    return OrderResponse.build(marketplace.lifecycle.cancel(user_id, order_id, reason))


# ---------------------------------------------------------------------------
# Flash Sale Router
# ---------------------------------------------------------------------------
flash_sale_router = APIRouter(prefix="/flash-sales", tags=["flash-sales"])


@flash_sale_router.get("", response_model=FlashSaleListResponse)
async def list_active_flash_sales(marketplace: Marketplace = Depends(get_marketplace)) -> FlashSaleListResponse:
    listings = marketplace.flash_sales.list_active()
    return FlashSaleListResponse(
        count=len(listings),
        data=[FlashSaleResponse.from_listing(listing) for listing in listings],
    )


# Admin routes are declared before "/{sale_id}" so "admin" is never taken for an id
@flash_sale_router.get("/admin/all", response_model=FlashSalePageResponse)
async def list_all_flash_sales(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _admin: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> FlashSalePageResponse:
    return FlashSalePageResponse.build(marketplace.flash_sales.list_all(page=page, limit=limit))


@flash_sale_router.get("/admin/analytics", response_model=FlashSaleAnalyticsResponse)
async def flash_sale_analytics(
    _admin: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> FlashSaleAnalyticsResponse:
    return FlashSaleAnalyticsResponse.build(marketplace.flash_sales.analytics())


@flash_sale_router.get("/{sale_id}", response_model=FlashSaleResponse)
async def get_flash_sale(sale_id: str, marketplace: Marketplace = Depends(get_marketplace)) -> FlashSaleResponse:
    return FlashSaleResponse.from_listing(marketplace.flash_sales.get(sale_id))


@flash_sale_router.post("", status_code=201, response_model=FlashSaleResponse)
async def create_flash_sale(
    body: FlashSaleRequest,
    admin_id: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> FlashSaleResponse:
    sale = marketplace.flash_sales.create(admin_id, CreateFlashSale(**body.model_dump()))
    return FlashSaleResponse.build(sale)


@flash_sale_router.put("/{sale_id}", response_model=FlashSaleResponse)
async def update_flash_sale(
    sale_id: str,
    body: UpdateFlashSaleRequest,
    _admin: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> FlashSaleResponse:
    sale = marketplace.flash_sales.update(sale_id, UpdateFlashSale(**body.model_dump()))
    return FlashSaleResponse.build(sale)


@flash_sale_router.delete("/{sale_id}", response_model=StatusResponse)
async def delete_flash_sale(
    sale_id: str,
    _admin: str = Depends(current_admin),
    marketplace: Marketplace = Depends(get_marketplace),
) -> StatusResponse:
    marketplace.flash_sales.delete(sale_id)
    return StatusResponse()
