"""Merchant API routes.

A merchant acts on the restaurant whose id equals their uid.
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from pydantic import BaseModel, Field

from bedside_ordering.auth.api_dependencies import get_current_user
from bedside_ordering.auth.identity import AuthenticatedUser
from bedside_ordering.models.menu_models import (
    MenuItem,
    PaymentMethodType,
    Promotion,
    PromotionDetails,
    PromotionType,
    Restaurant,
    RestaurantPaymentMethod,
)
from bedside_ordering.models.order_models import Order, OrderStatus
from bedside_ordering.services.merchant_order_service import MerchantOrderController
from bedside_ordering.services.restaurant_service import generate_entity_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/merchant")


class RegisterRestaurantRequest(BaseModel):
    name: str = Field(..., min_length=1)
    cuisine: str = Field(..., min_length=1)


class MenuItemRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    price: Decimal = Field(..., gt=0)
    image_url: str | None = None


class AvailabilityRequest(BaseModel):
    is_available: bool


class PromotionRequest(BaseModel):
    """Promotion as edited by the merchant; a missing id creates a new promotion."""

    id: str | None = None
    description: str = Field(..., min_length=1)
    type: PromotionType = PromotionType.DISCOUNT_FIXED_AMOUNT
    details: PromotionDetails = Field(default_factory=PromotionDetails)
    is_active: bool = True
    start_date: str | None = None
    end_date: str | None = None

    def to_promotion(self) -> Promotion:
        return Promotion(
            id=self.id or generate_entity_id("promo"),
            description=self.description,
            type=self.type,
            details=self.details,
            is_active=self.is_active,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class PaymentMethodRequest(BaseModel):
    id: str | None = None
    type: PaymentMethodType
    name: str = Field(..., min_length=1)
    qr_code_url: str = Field(..., min_length=1)

    def to_payment_method(self) -> RestaurantPaymentMethod:
        return RestaurantPaymentMethod(
            id=self.id or generate_entity_id("pm"),
            type=self.type,
            name=self.name,
            qr_code_url=self.qr_code_url,
        )


class ImageUploadResponse(BaseModel):
    url: str


class MerchantOrderView(BaseModel):
    """An order together with the actions available to the merchant."""

    order: Order
    next_status: OrderStatus | None
    can_advance: bool
    can_cancel: bool
    advance_label: str | None

    @classmethod
    def from_order(cls, order: Order) -> "MerchantOrderView":
        return cls(
            order=order,
            next_status=MerchantOrderController.next_status(order),
            can_advance=MerchantOrderController.can_advance(order),
            can_cancel=MerchantOrderController.can_cancel(order),
            advance_label=MerchantOrderController.advance_label(order),
        )


class CancelOrderRequest(BaseModel):
    confirmed: bool = False


@router.post(
    "/restaurant",
    response_model=Restaurant,
    status_code=status.HTTP_201_CREATED,
    tags=["Merchant"],
)
async def register_restaurant(
    body: RegisterRestaurantRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Restaurant:
    """Create the merchant's restaurant, pending admin approval."""
    restaurant: Restaurant = await request.app.state.restaurant_service.register_restaurant(
        owner_uid=user.uid, name=body.name, cuisine=body.cuisine
    )
    return restaurant


@router.get("/restaurant", response_model=Restaurant, tags=["Merchant"])
async def get_own_restaurant(
    request: Request, user: AuthenticatedUser = Depends(get_current_user)
) -> Restaurant:
    restaurant: Restaurant = await request.app.state.restaurant_service.get_restaurant_for_owner(
        user.uid
    )
    return restaurant


@router.post(
    "/menu", response_model=MenuItem, status_code=status.HTTP_201_CREATED, tags=["Menu"]
)
async def add_menu_item(
    body: MenuItemRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> MenuItem:
    menu_item: MenuItem = await request.app.state.restaurant_service.add_menu_item(
        restaurant_id=user.uid,
        name=body.name,
        price=body.price,
        description=body.description,
        image_url=body.image_url,
    )
    return menu_item


@router.put("/menu/{item_id}", response_model=MenuItem, tags=["Menu"])
async def update_menu_item(
    item_id: str,
    body: MenuItemRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> MenuItem:
    menu_item: MenuItem = await request.app.state.restaurant_service.update_menu_item(
        restaurant_id=user.uid,
        item_id=item_id,
        name=body.name,
        price=body.price,
        description=body.description,
        image_url=body.image_url,
    )
    return menu_item


@router.put("/menu/{item_id}/availability", response_model=MenuItem, tags=["Menu"])
async def set_item_availability(
    item_id: str,
    body: AvailabilityRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> MenuItem:
    menu_item: MenuItem = await request.app.state.restaurant_service.set_item_availability(
        user.uid, item_id, body.is_available
    )
    return menu_item


@router.delete("/menu/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Menu"])
async def remove_menu_item(
    item_id: str,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> None:
    await request.app.state.restaurant_service.remove_menu_item(user.uid, item_id)


@router.put("/promotions", response_model=list[Promotion], tags=["Promotions"])
async def save_promotions(
    body: list[PromotionRequest],
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[Promotion]:
    """Replace the promotion list; promotions not sent are removed."""
    promotions: list[Promotion] = await request.app.state.restaurant_service.save_promotions(
        user.uid, [promotion.to_promotion() for promotion in body]
    )
    return promotions


@router.put(
    "/payment-methods", response_model=list[RestaurantPaymentMethod], tags=["Payment Methods"]
)
async def save_payment_methods(
    body: list[PaymentMethodRequest],
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[RestaurantPaymentMethod]:
    methods: list[RestaurantPaymentMethod] = (
        await request.app.state.restaurant_service.save_payment_methods(
            user.uid, [method.to_payment_method() for method in body]
        )
    )
    return methods


@router.post("/images", response_model=ImageUploadResponse, tags=["Images"])
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_current_user),
) -> ImageUploadResponse:
    """Upload a menu, cover or payment QR image to the image host.

    Raises:
        HTTPException: 422 for non-image files, 502 if the image host fails
    """
    content_type = file.content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Only image files can be uploaded"
        )

    content = await file.read()
    url = await request.app.state.image_hosting_client.upload_image(
        file.filename or "upload", content, content_type
    )
    if url is None:
        logger.error(f"Image upload failed for merchant {user.uid}")  # pragma: no cover
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Image upload failed")

    return ImageUploadResponse(url=url)


@router.get("/orders", response_model=list[MerchantOrderView], tags=["Merchant Orders"])
async def list_orders(
    request: Request, user: AuthenticatedUser = Depends(get_current_user)
) -> list[MerchantOrderView]:
    """The restaurant's orders, newest first, with the actions each allows."""
    orders = await request.app.state.merchant_order_controller.list_orders(user.uid)
    return [MerchantOrderView.from_order(order) for order in orders]


@router.post(
    "/orders/{order_id}/advance", response_model=MerchantOrderView, tags=["Merchant Orders"]
)
async def advance_order(
    order_id: str,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> MerchantOrderView:
    order = await request.app.state.merchant_order_controller.advance(order_id, user.uid)
    return MerchantOrderView.from_order(order)


@router.post(
    "/orders/{order_id}/cancel", response_model=MerchantOrderView, tags=["Merchant Orders"]
)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> MerchantOrderView:
    """Cancel an order; the request must carry confirmed=true."""
    order = await request.app.state.merchant_order_controller.cancel(
        order_id, user.uid, body.confirmed
    )
    return MerchantOrderView.from_order(order)
