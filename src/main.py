"""Main application entry point for the bedside ordering service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from bedside_ordering.auth.authorization import (
    AllowListAuthorizationPolicy,
    AuthorizationPolicy,
    ClaimsAuthorizationPolicy,
)
from bedside_ordering.auth.identity import StaticTokenIdentityProvider
from bedside_ordering.handlers.api_handler import create_app
from bedside_ordering.observability import configure_logging, setup_observability
from bedside_ordering.repositories.location_repositories import (
    BedQrCodeRepository,
    FavoritesRepository,
)
from bedside_ordering.repositories.order_repository import OrderRepository
from bedside_ordering.repositories.restaurant_repository import RestaurantRepository
from bedside_ordering.services.image_hosting_client import ImageHostingClient
from bedside_ordering.services.location_service import BedQrCodeService, FavoritesService
from bedside_ordering.services.merchant_order_service import MerchantOrderController
from bedside_ordering.services.order_feed import OrderFeed
from bedside_ordering.services.order_service import OrderService
from bedside_ordering.services.restaurant_service import RestaurantService
from bedside_ordering.services.session_storage import (
    FileSessionStorage,
    InMemorySessionStorage,
    SessionStorage,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_HOST_URL = "https://picui.cn/api/v1/upload"


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    return boto3.resource("dynamodb", region_name=region)


def create_session_storage() -> SessionStorage:
    """File-backed session storage if SESSION_STORAGE_DIR is set, in-memory otherwise."""
    storage_dir = os.getenv("SESSION_STORAGE_DIR")
    if storage_dir:
        logger.info(f"Customer sessions stored under {storage_dir}")
        return FileSessionStorage(storage_dir)

    logger.warning("SESSION_STORAGE_DIR not set - customer carts are kept in memory only")
    return InMemorySessionStorage()


def create_authorization_policy() -> AuthorizationPolicy:
    """Admin allow-list from ADMIN_EMAILS (development), role claim otherwise."""
    admin_emails = [email for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()]
    if admin_emails:
        logger.warning("Using ADMIN_EMAILS allow-list for admin access - development only")
        return AllowListAuthorizationPolicy(admin_emails)

    return ClaimsAuthorizationPolicy()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repositories
    3. Creates services and the order feed
    4. Configures authentication
    5. Creates the FastAPI app and sets up observability

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing bedside ordering service...")

    dynamodb_resource = get_dynamodb_resource()

    restaurants_table = os.getenv("DYNAMODB_RESTAURANTS_TABLE", "restaurants")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "orders")
    favorites_table = os.getenv("DYNAMODB_FAVORITES_TABLE", "favorites")
    qrcodes_table = os.getenv("DYNAMODB_BED_QRCODES_TABLE", "bed-qrcodes")

    restaurant_repository = RestaurantRepository(dynamodb_resource, restaurants_table)
    order_repository = OrderRepository(dynamodb_resource, orders_table)
    favorites_repository = FavoritesRepository(dynamodb_resource, favorites_table)
    qr_code_repository = BedQrCodeRepository(dynamodb_resource, qrcodes_table)

    logger.info(
        f"Repositories configured - restaurants: {restaurants_table}, orders: {orders_table}, "
        f"favorites: {favorites_table}, bed QR codes: {qrcodes_table}"
    )

    image_host_url = os.getenv("IMAGE_HOST_URL", DEFAULT_IMAGE_HOST_URL)
    image_host_api_key = os.getenv("IMAGE_HOST_API_KEY", "")
    if not image_host_api_key:
        logger.warning("IMAGE_HOST_API_KEY not set - image uploads will be rejected by the host")

    order_feed = OrderFeed()
    order_service = OrderService(order_repository, restaurant_repository, order_feed)

    identity_provider = StaticTokenIdentityProvider.from_config(os.getenv("AUTH_TOKENS", ""))

    app = create_app(
        order_service=order_service,
        merchant_order_controller=MerchantOrderController(order_service),
        restaurant_service=RestaurantService(restaurant_repository),
        favorites_service=FavoritesService(favorites_repository),
        bed_qr_code_service=BedQrCodeService(qr_code_repository),
        image_hosting_client=ImageHostingClient(image_host_url, image_host_api_key),
        session_storage=create_session_storage(),
        order_feed=order_feed,
        identity_provider=identity_provider,
        authorization_policy=create_authorization_policy(),
    )

    setup_observability(app)

    logger.info("Bedside ordering service initialized successfully")
    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
