"""FastAPI application for the bedside ordering API."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bedside_ordering.auth.authorization import AuthorizationPolicy
from bedside_ordering.auth.identity import IdentityProvider
from bedside_ordering.exceptions import (
    AlreadyRated,
    BedQrCodeNotFound,
    CancellationNotConfirmed,
    EmptyCart,
    InvalidQrCode,
    InvalidRating,
    InvalidTransition,
    MenuItemNotFound,
    OrderingError,
    OrderNotFound,
    PersistenceFailure,
    RatingNotAllowed,
    RestaurantMismatch,
    RestaurantNotFound,
    RestaurantUnavailable,
)
from bedside_ordering.handlers import admin_routes, customer_routes, merchant_routes
from bedside_ordering.services.image_hosting_client import ImageHostingClient
from bedside_ordering.services.location_service import BedQrCodeService, FavoritesService
from bedside_ordering.services.merchant_order_service import MerchantOrderController
from bedside_ordering.services.order_feed import OrderFeed
from bedside_ordering.services.order_service import OrderService
from bedside_ordering.services.restaurant_service import RestaurantService
from bedside_ordering.services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[OrderingError], int] = {
    RestaurantMismatch: 409,
    InvalidTransition: 409,
    AlreadyRated: 409,
    CancellationNotConfirmed: 409,
    RatingNotAllowed: 409,
    RestaurantUnavailable: 409,
    OrderNotFound: 404,
    RestaurantNotFound: 404,
    MenuItemNotFound: 404,
    BedQrCodeNotFound: 404,
    EmptyCart: 422,
    InvalidRating: 422,
    InvalidQrCode: 422,
    PersistenceFailure: 503,
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class ErrorResponse(BaseModel):
    """Body returned for ordering errors."""

    error: str
    detail: str


def status_code_for(error: OrderingError) -> int:
    """HTTP status for an ordering error, by its most specific known class."""
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 400


def create_app(
    order_service: OrderService,
    merchant_order_controller: MerchantOrderController,
    restaurant_service: RestaurantService,
    favorites_service: FavoritesService,
    bed_qr_code_service: BedQrCodeService,
    image_hosting_client: ImageHostingClient,
    session_storage: SessionStorage,
    order_feed: OrderFeed,
    identity_provider: IdentityProvider,
    authorization_policy: AuthorizationPolicy,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        order_service: Service for the order lifecycle
        merchant_order_controller: Merchant order actions
        restaurant_service: Restaurant, menu and promotion management
        favorites_service: Customer favorites
        bed_qr_code_service: Admin bed QR code management
        image_hosting_client: Client for image uploads
        session_storage: Storage for carts and delivery locations
        order_feed: Live order read model
        identity_provider: Resolves bearer tokens to users
        authorization_policy: Decides who is an admin

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Bedside Ordering API",
        description="Hospital bedside food ordering for customers, merchants and admins",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.order_service = order_service
    app.state.merchant_order_controller = merchant_order_controller
    app.state.restaurant_service = restaurant_service
    app.state.favorites_service = favorites_service
    app.state.bed_qr_code_service = bed_qr_code_service
    app.state.image_hosting_client = image_hosting_client
    app.state.session_storage = session_storage
    app.state.order_feed = order_feed
    app.state.identity_provider = identity_provider
    app.state.authorization_policy = authorization_policy

    @app.exception_handler(OrderingError)
    async def handle_ordering_error(_request: Request, exc: OrderingError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc}")
        else:
            logger.info(f"Request rejected with {status_code}: {type(exc).__name__}: {exc}")

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    app.include_router(customer_routes.router)
    app.include_router(merchant_routes.router)
    app.include_router(admin_routes.router)

    return app
