"""Customer-facing API routes.

Customers are anonymous; their cart, delivery location, favorites and orders
are tied to the session id sent in the X-Session-Id header.
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from bedside_ordering.auth.api_dependencies import get_session_id
from bedside_ordering.exceptions import EmptyCart, MenuItemNotFound, RestaurantNotFound
from bedside_ordering.models.location_models import DeliveryLocation, FavoriteItem
from bedside_ordering.models.menu_models import Restaurant
from bedside_ordering.models.order_models import CartItem, CustomerInfo, Order, PaymentMethod
from bedside_ordering.services.cart_service import CartStore
from bedside_ordering.services.location_service import DeliveryLocationStore
from bedside_ordering.services.pricing_service import quote_cart

logger = logging.getLogger(__name__)

router = APIRouter()


class CartResponse(BaseModel):
    """Cart contents with the advisory price quote."""

    restaurant_id: str | None
    items: list[CartItem]
    item_count: int
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    promotion_id: str | None = None
    promotion_description: str | None = None


class AddCartItemRequest(BaseModel):
    restaurant_id: str
    item_id: str


class UpdateQuantityRequest(BaseModel):
    quantity: int


class DeliveryDetailsRequest(BaseModel):
    details: str = Field(..., min_length=1)


class ScanRequest(BaseModel):
    payload: str = Field(..., description="Raw text read from a bed QR code")


class CheckoutRequest(BaseModel):
    """Checkout form.

    order_id is optional; sending the same id again returns the order created
    by the first attempt instead of placing a second one.
    """

    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    payment_method: PaymentMethod
    order_id: str | None = None


class RatingRequest(BaseModel):
    rating: int


class FavoriteRequest(BaseModel):
    restaurant_id: str
    item_id: str


class FavoriteToggleResponse(BaseModel):
    is_favorite: bool


def _cart(request: Request, session_id: str) -> CartStore:
    return CartStore(request.app.state.session_storage, session_id)


async def _cart_response(request: Request, cart: CartStore) -> CartResponse:
    items = cart.items
    promotions = []
    restaurant_id = cart.restaurant_id()
    if restaurant_id is not None:
        try:
            restaurant = await request.app.state.restaurant_service.get_restaurant(restaurant_id)
            promotions = restaurant.promotions
        except RestaurantNotFound:
            logger.warning(f"Cart references unknown restaurant {restaurant_id}")

    quote = quote_cart(items, promotions)
    return CartResponse(
        restaurant_id=restaurant_id,
        items=items,
        item_count=cart.item_count(),
        subtotal=quote.subtotal,
        discount=quote.discount,
        total=quote.total,
        promotion_id=quote.promotion.id if quote.promotion else None,
        promotion_description=quote.promotion.description if quote.promotion else None,
    )


@router.get("/restaurants", response_model=list[Restaurant], tags=["Restaurants"])
async def list_restaurants(request: Request) -> list[Restaurant]:
    """List restaurants that are open for orders."""
    restaurants: list[Restaurant] = await request.app.state.restaurant_service.list_approved_restaurants()
    return restaurants


@router.get("/restaurants/{restaurant_id}", response_model=Restaurant, tags=["Restaurants"])
async def get_restaurant(restaurant_id: str, request: Request) -> Restaurant:
    restaurant: Restaurant = await request.app.state.restaurant_service.get_approved_restaurant(
        restaurant_id
    )
    return restaurant


@router.get("/cart", response_model=CartResponse, tags=["Cart"])
async def get_cart(request: Request, session_id: str = Depends(get_session_id)) -> CartResponse:
    """Current cart with subtotal, best discount and total."""
    return await _cart_response(request, _cart(request, session_id))


@router.post("/cart/items", response_model=CartResponse, tags=["Cart"])
async def add_cart_item(
    body: AddCartItemRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> CartResponse:
    """Add one unit of a menu item to the cart.

    Raises:
        HTTPException: 409 if the item is sold out
    """
    restaurant = await request.app.state.restaurant_service.get_approved_restaurant(
        body.restaurant_id
    )
    menu_item = restaurant.find_menu_item(body.item_id)
    if menu_item is None:
        raise MenuItemNotFound(body.restaurant_id, body.item_id)
    if not menu_item.is_available:
        raise HTTPException(status_code=409, detail=f"{menu_item.name} is currently unavailable")

    cart = _cart(request, session_id)
    cart.add_item(menu_item)
    return await _cart_response(request, cart)


@router.put("/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"])
async def update_cart_item(
    item_id: str,
    body: UpdateQuantityRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> CartResponse:
    """Set an item's quantity; 0 removes it."""
    cart = _cart(request, session_id)
    try:
        cart.update_quantity(item_id, body.quantity)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return await _cart_response(request, cart)


@router.delete("/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"])
async def remove_cart_item(
    item_id: str,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> CartResponse:
    cart = _cart(request, session_id)
    cart.remove_item(item_id)
    return await _cart_response(request, cart)


@router.delete("/cart", status_code=status.HTTP_204_NO_CONTENT, tags=["Cart"])
async def clear_cart(request: Request, session_id: str = Depends(get_session_id)) -> None:
    _cart(request, session_id).clear()


@router.post("/cart/reorder/{order_id}", response_model=CartResponse, tags=["Cart"])
async def reorder(
    order_id: str,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> CartResponse:
    """Put the items of a past order back into the cart."""
    order = await request.app.state.order_service.get_order_for_customer(order_id, session_id)
    cart = _cart(request, session_id)
    cart.reorder_from_past_order(order)
    return await _cart_response(request, cart)


@router.get("/delivery-location", response_model=DeliveryLocation | None, tags=["Delivery"])
async def get_delivery_location(
    request: Request, session_id: str = Depends(get_session_id)
) -> DeliveryLocation | None:
    return DeliveryLocationStore(request.app.state.session_storage, session_id).get()


@router.put("/delivery-location", response_model=DeliveryLocation, tags=["Delivery"])
async def set_delivery_details(
    body: DeliveryDetailsRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> DeliveryLocation:
    """Enter the delivery location by hand."""
    store = DeliveryLocationStore(request.app.state.session_storage, session_id)
    try:
        return store.set_details(body.details)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.post("/delivery-location/scan", response_model=DeliveryLocation, tags=["Delivery"])
async def scan_bed_qr_code(
    body: ScanRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> DeliveryLocation:
    """Set the delivery location from a scanned bed QR code."""
    store = DeliveryLocationStore(request.app.state.session_storage, session_id)
    return store.set_from_qr_payload(body.payload)


@router.delete("/delivery-location", status_code=status.HTTP_204_NO_CONTENT, tags=["Delivery"])
async def clear_delivery_location(
    request: Request, session_id: str = Depends(get_session_id)
) -> None:
    DeliveryLocationStore(request.app.state.session_storage, session_id).clear()


@router.post(
    "/checkout", response_model=Order, status_code=status.HTTP_201_CREATED, tags=["Orders"]
)
async def checkout(
    body: CheckoutRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> Order:
    """Place an order for the cart.

    Resending an order_id that was already placed returns that order without
    looking at the cart.

    Raises:
        HTTPException: 422 if no delivery location has been set
    """
    if body.order_id is not None:
        placed: Order | None = await request.app.state.order_service.find_placed_order(
            body.order_id, session_id
        )
        if placed is not None:
            return placed

    cart = _cart(request, session_id)
    restaurant_id = cart.restaurant_id()
    if restaurant_id is None:
        raise EmptyCart("Cannot place an order with an empty cart")

    location = DeliveryLocationStore(request.app.state.session_storage, session_id).get()
    if location is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Set a delivery location before checking out",
        )

    restaurant = await request.app.state.restaurant_service.get_restaurant(restaurant_id)
    logger.info(f"Checkout for session {session_id} at restaurant {restaurant_id}")

    order: Order = await request.app.state.order_service.add_order(
        cart=cart,
        delivery_location=location,
        customer=CustomerInfo(
            customer_id=session_id, name=body.customer_name, phone=body.customer_phone
        ),
        restaurant=restaurant,
        payment_method=body.payment_method,
        order_id=body.order_id,
    )
    return order


@router.get("/orders", response_model=list[Order], tags=["Orders"])
async def list_my_orders(request: Request, session_id: str = Depends(get_session_id)) -> list[Order]:
    """The session's orders, newest first."""
    orders: list[Order] = await request.app.state.order_service.get_orders_for_customer(session_id)
    return orders


@router.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
async def get_my_order(
    order_id: str, request: Request, session_id: str = Depends(get_session_id)
) -> Order:
    order: Order = await request.app.state.order_service.get_order_for_customer(order_id, session_id)
    return order


@router.post("/orders/{order_id}/confirm-delivery", response_model=Order, tags=["Orders"])
async def confirm_delivery(
    order_id: str, request: Request, session_id: str = Depends(get_session_id)
) -> Order:
    """Confirm receipt of an order that is out for delivery."""
    order: Order = await request.app.state.order_service.confirm_delivery(order_id, session_id)
    return order


@router.post("/orders/{order_id}/rating", response_model=Order, tags=["Orders"])
async def rate_order(
    order_id: str,
    body: RatingRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> Order:
    order: Order = await request.app.state.order_service.set_rating(
        order_id, body.rating, customer_id=session_id
    )
    return order


@router.get("/favorites", response_model=list[FavoriteItem], tags=["Favorites"])
async def list_favorites(
    request: Request, session_id: str = Depends(get_session_id)
) -> list[FavoriteItem]:
    favorites: list[FavoriteItem] = await request.app.state.favorites_service.list_favorites(
        session_id
    )
    return favorites


@router.post("/favorites/toggle", response_model=FavoriteToggleResponse, tags=["Favorites"])
async def toggle_favorite(
    body: FavoriteRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> FavoriteToggleResponse:
    """Add the item to favorites, or remove it if it is already there."""
    restaurant = await request.app.state.restaurant_service.get_approved_restaurant(
        body.restaurant_id
    )
    menu_item = restaurant.find_menu_item(body.item_id)
    if menu_item is None:
        raise MenuItemNotFound(body.restaurant_id, body.item_id)

    is_favorite = await request.app.state.favorites_service.toggle_favorite(session_id, menu_item)
    return FavoriteToggleResponse(is_favorite=is_favorite)


@router.delete(
    "/favorites/{restaurant_id}/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Favorites"],
)
async def remove_favorite(
    restaurant_id: str,
    item_id: str,
    request: Request,
    session_id: str = Depends(get_session_id),
) -> None:
    await request.app.state.favorites_service.remove_favorite(session_id, restaurant_id, item_id)
