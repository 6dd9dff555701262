"""Pydantic request/response schemas for the Marketplace API.

These are external contracts — separate from the service-level inputs in
each component. Amounts leave the API as plain JSON numbers.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from marketplace.cart.aggregator import CartSummary, CartValidation, CartView
from marketplace.flash_sale.flash_sale import FlashSale
from marketplace.flash_sale.management import FlashSaleAnalytics, FlashSaleListing, FlashSalePage
from marketplace.order.lifecycle import MerchantOrderPage, TrackingInfo
from marketplace.order.order import Order, OrderItem, OrderStatusEntry
from marketplace.product.product import Product


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str | None = None
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Product Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    merchant_id: str
    merchant_name: str = ""
    price: float = Field(gt=0)
    stock_quantity: int = Field(ge=0, default=0)
    is_active: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Maasai Shuka Blanket",
                    "merchant_id": "merchant-001",
                    "merchant_name": "Nairobi Textiles",
                    "price": 25.0,
                    "stock_quantity": 40,
                }
            ]
        }
    }


class ProductResponse(BaseModel):
    id: str
    name: str
    merchant_id: str
    merchant_name: str
    price: float
    stock_quantity: int
    sold_quantity: int
    available: int
    is_active: bool

    @classmethod
    def build(cls, product: Product) -> "ProductResponse":
        return cls(
            id=str(product.id),
            name=product.name,
            merchant_id=product.merchant_id,
            merchant_name=product.merchant_name,
            price=float(product.price),
            stock_quantity=product.stock_quantity,
            sold_quantity=product.sold_quantity,
            available=product.available,
            is_active=product.is_active,
        )


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    payment_method: str
    notes: str | None = None


class CartItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    merchant_id: str
    merchant_name: str
    quantity: int
    price: float
    subtotal: float


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: list[CartItemResponse]
    total_amount: float
    item_count: int
    dropped_item_ids: list[str] = []

    @classmethod
    def build(cls, view: CartView) -> "CartResponse":
        cart = view.cart
        return cls(
            id=str(cart.id),
            user_id=cart.user_id,
            items=[
                CartItemResponse(
                    id=str(item.id),
                    product_id=item.product_id,
                    product_name=item.product_name,
                    merchant_id=item.merchant_id,
                    merchant_name=item.merchant_name,
                    quantity=item.quantity,
                    price=float(item.price),
                    subtotal=float(item.subtotal),
                )
                for item in cart.lines
            ],
            total_amount=float(cart.total_amount),
            item_count=cart.item_count,
            dropped_item_ids=list(view.dropped_item_ids),
        )


class CartSummaryResponse(BaseModel):
    item_count: int
    total_amount: float
    is_empty: bool

    @classmethod
    def build(cls, summary: CartSummary) -> "CartSummaryResponse":
        return cls(item_count=summary.item_count, total_amount=float(summary.total_amount), is_empty=summary.is_empty)


class CartIssueResponse(BaseModel):
    kind: str
    item_id: str
    product_id: str
    product_name: str
    message: str
    available: int | None = None
    requested: int | None = None
    old_price: float | None = None
    new_price: float | None = None


class ValidCartLineResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    subtotal: float


class CartValidationResponse(BaseModel):
    is_valid: bool
    issues: list[CartIssueResponse]
    valid_items: list[ValidCartLineResponse]
    total_valid_items: int
    total_valid_amount: float

    @classmethod
    def build(cls, validation: CartValidation) -> "CartValidationResponse":
        return cls(
            is_valid=validation.is_valid,
            issues=[
                CartIssueResponse(
                    kind=issue.kind.value,
                    item_id=issue.item_id,
                    product_id=issue.product_id,
                    product_name=issue.product_name,
                    message=issue.message,
                    available=issue.available,
                    requested=issue.requested,
                    old_price=float(issue.old_price) if issue.old_price is not None else None,
                    new_price=float(issue.new_price) if issue.new_price is not None else None,
                )
                for issue in validation.issues
            ],
            valid_items=[
                ValidCartLineResponse(
                    item_id=line.item_id,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=float(line.unit_price),
                    subtotal=float(line.subtotal),
                )
                for line in validation.valid_items
            ],
            total_valid_items=len(validation.valid_items),
            total_valid_amount=float(validation.total_valid_amount),
        )


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str
    quantity: int
    price: float | None = None


class CreateOrderRequest(BaseModel):
    items: list[OrderLineSchema]
    shipping_address: AddressSchema
    payment_method: str
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "shipping_address": {
                        "street": "12 Moi Avenue",
                        "city": "Nairobi",
                        "state": "Nairobi County",
                        "postal_code": "00100",
                        "country": "KE",
                    },
                    "payment_method": "mpesa",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = Field(default=None, max_length=500)
    tracking_number: str | None = Field(default=None, max_length=100)
    estimated_delivery: datetime | None = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(default="", max_length=500)


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    merchant_id: str
    quantity: int
    unit_price: float
    subtotal: float

    @classmethod
    def build(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            product_id=item.product_id,
            product_name=item.product_name,
            merchant_id=item.merchant_id,
            quantity=item.quantity,
            unit_price=float(item.unit_price),
            subtotal=float(item.subtotal),
        )


class StatusEntryResponse(BaseModel):
    status: str
    note: str | None
    tracking_number: str | None
    estimated_delivery: datetime | None
    changed_by: str | None
    changed_at: datetime

    @classmethod
    def build(cls, entry: OrderStatusEntry) -> "StatusEntryResponse":
        return cls(
            status=entry.status,
            note=entry.note,
            tracking_number=entry.tracking_number,
            estimated_delivery=entry.estimated_delivery,
            changed_by=str(entry.changed_by) if entry.changed_by else None,
            changed_at=entry.changed_at,
        )


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: str
    payment_method: str
    payment_status: str
    is_cancellable: bool
    items: list[OrderItemResponse]
    total_amount: float
    shipping_address: AddressSchema
    notes: str | None
    tracking_number: str | None
    estimated_delivery: datetime | None
    status_history: list[StatusEntryResponse]
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None

    @classmethod
    def build(cls, order: Order) -> "OrderResponse":
        address = order.shipping_address
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id),
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            is_cancellable=order.is_cancellable,
            items=[OrderItemResponse.build(item) for item in order.lines],
            total_amount=float(order.total_amount),
            shipping_address=AddressSchema(
                street=address.street,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
                country=address.country,
            ),
            notes=order.notes,
            tracking_number=order.tracking_number,
            estimated_delivery=order.estimated_delivery,
            status_history=[StatusEntryResponse.build(entry) for entry in order.timeline],
            created_at=order.created_at,
            updated_at=order.updated_at,
            cancelled_at=order.cancelled_at,
        )


class OrderListResponse(BaseModel):
    count: int
    data: list[OrderResponse]


class TrackingResponse(BaseModel):
    order_number: str
    status: str
    created_at: datetime
    tracking_number: str | None
    estimated_delivery: datetime | None
    items: list[OrderItemResponse]
    timeline: list[StatusEntryResponse]

    @classmethod
    def build(cls, info: TrackingInfo) -> "TrackingResponse":
        return cls(
            order_number=info.order_number,
            status=info.status,
            created_at=info.created_at,
            tracking_number=info.tracking_number,
            estimated_delivery=info.estimated_delivery,
            items=[OrderItemResponse.build(item) for item in info.items],
            timeline=[StatusEntryResponse.build(entry) for entry in info.timeline],
        )


class MerchantOrderResponse(BaseModel):
    id: str
    order_number: str
    status: str
    created_at: datetime
    items: list[OrderItemResponse]
    merchant_subtotal: float


class MerchantOrderPageResponse(BaseModel):
    count: int
    total: int
    page: int
    limit: int
    total_pages: int
    data: list[MerchantOrderResponse]

    @classmethod
    def build(cls, page: MerchantOrderPage) -> "MerchantOrderPageResponse":
        return cls(
            count=len(page.items),
            total=page.total,
            page=page.page,
            limit=page.limit,
            total_pages=page.total_pages,
            data=[
                MerchantOrderResponse(
                    id=str(entry.order.id),
                    order_number=entry.order.order_number,
                    status=entry.order.status,
                    created_at=entry.order.created_at,
                    items=[OrderItemResponse.build(item) for item in entry.items],
                    merchant_subtotal=float(entry.merchant_subtotal),
                )
                for entry in page.items
            ],
        )


# ---------------------------------------------------------------------------

# ---------------------------------------------------------------------------
# Flash Sale Schemas
# ---------------------------------------------------------------------------
class FlashSaleProductSchema(BaseModel):
    product_id: str
    name: str
    original_price: float = Field(gt=0)
    sale_price: float = Field(gt=0)
    merchant_id: str = ""
    merchant_name: str = ""
    stock_quantity: int = Field(ge=0, default=0)
    max_quantity_per_user: int = Field(ge=1, default=5)


class FlashSaleRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    start_date: datetime
    end_date: datetime
    products: list[FlashSaleProductSchema]


class UpdateFlashSaleRequest(FlashSaleRequest):
    is_active: bool | None = None


class FlashSaleProductResponse(BaseModel):
    product_id: str
    name: str
    original_price: float
    sale_price: float
    discount_percentage: int
    merchant_id: str
    merchant_name: str
    stock_quantity: int
    sold_quantity: int
    max_quantity_per_user: int


class TimeRemainingResponse(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int
    expired: bool


class FlashSaleResponse(BaseModel):
    id: str
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    total_views: int
    total_sales: int
    created_by: str
    products: list[FlashSaleProductResponse]
    created_at: datetime
    time_remaining: TimeRemainingResponse | None = None
    is_currently_active: bool | None = None
    status: str | None = None

    @classmethod
    def build(cls, sale: FlashSale, listing: FlashSaleListing | None = None) -> "FlashSaleResponse":
        response = cls(
            id=str(sale.id),
            title=sale.title,
            description=sale.description,
            start_date=sale.start_date,
            end_date=sale.end_date,
            is_active=sale.is_active,
            total_views=sale.total_views,
            total_sales=sale.total_sales,
            created_by=sale.created_by,
            products=[
                FlashSaleProductResponse(
                    product_id=p.product_id,
                    name=p.name,
                    original_price=float(p.original_price),
                    sale_price=float(p.sale_price),
                    discount_percentage=p.discount_percentage,
                    merchant_id=p.merchant_id,
                    merchant_name=p.merchant_name,
                    stock_quantity=p.stock_quantity,
                    sold_quantity=p.sold_quantity,
                    max_quantity_per_user=p.max_quantity_per_user,
                )
                for p in sale.lines
            ],
            created_at=sale.created_at,
        )
        if listing is not None:
            remaining = listing.window.time_remaining
            response.time_remaining = TimeRemainingResponse(
                days=remaining.days,
                hours=remaining.hours,
                minutes=remaining.minutes,
                seconds=remaining.seconds,
                expired=remaining.expired,
            )
            response.is_currently_active = listing.window.is_currently_active
            response.status = listing.window.status.value
        return response

    @classmethod
    def from_listing(cls, listing: FlashSaleListing) -> "FlashSaleResponse":
        return cls.build(listing.sale, listing)


class FlashSaleListResponse(BaseModel):
    count: int
    data: list[FlashSaleResponse]


class FlashSalePageResponse(BaseModel):
    count: int
    total: int
    page: int
    limit: int
    data: list[FlashSaleResponse]

    @classmethod
    def build(cls, page: FlashSalePage) -> "FlashSalePageResponse":
        return cls(
            count=len(page.items),
            total=page.total,
            page=page.page,
            limit=page.limit,
            data=[FlashSaleResponse.from_listing(listing) for listing in page.items],
        )


class TopSaleResponse(BaseModel):
    id: str
    title: str
    total_sales: int
    total_views: int


class FlashSaleAnalyticsResponse(BaseModel):
    total_sales: int
    total_views: int
    active_sales: int
    recent_sales: int
    top_performing_sales: list[TopSaleResponse]

    @classmethod
    def build(cls, analytics: FlashSaleAnalytics) -> "FlashSaleAnalyticsResponse":
        return cls(
            total_sales=analytics.total_sales,
            total_views=analytics.total_views,
            active_sales=analytics.active_sales,
            recent_sales=analytics.recent_sales,
            top_performing_sales=[
                TopSaleResponse(id=t.id, title=t.title, total_sales=t.total_sales, total_views=t.total_views)
                for t in analytics.top_performing_sales
            ],
        )
