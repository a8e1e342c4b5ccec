"""Shared dependency factory for Lambda handlers.

This module provides cached dependency initialization to optimize Lambda cold starts.
Dependencies are created once and reused across invocations within the same Lambda container.
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
from bedside_ordering.handlers.event_handler import OrderStreamHandler
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
from bedside_ordering.services.session_storage import FileSessionStorage

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_restaurant_repository: RestaurantRepository | None = None
_order_feed: OrderFeed | None = None
_order_service: OrderService | None = None
_stream_handler: OrderStreamHandler | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_restaurant_repository() -> RestaurantRepository:
    """Create or retrieve cached restaurant repository."""
    global _restaurant_repository

    if _restaurant_repository is None:
        _restaurant_repository = RestaurantRepository(
            get_dynamodb_resource(), os.getenv("DYNAMODB_RESTAURANTS_TABLE", "restaurants")
        )

    return _restaurant_repository


def get_order_feed() -> OrderFeed:
    """Create or retrieve the container's order feed."""
    global _order_feed

    if _order_feed is None:
        _order_feed = OrderFeed()

    return _order_feed


def get_order_service() -> OrderService:
    """Create or retrieve cached order service.

    Returns:
        Configured OrderService instance
    """
    global _order_service

    if _order_service is not None:
        return _order_service

    order_repository = OrderRepository(
        get_dynamodb_resource(), os.getenv("DYNAMODB_ORDERS_TABLE", "orders")
    )
    _order_service = OrderService(order_repository, get_restaurant_repository(), get_order_feed())

    logger.info("Order service initialized")
    return _order_service


def get_stream_handler() -> OrderStreamHandler:
    """Create or retrieve cached DynamoDB stream handler.

    Returns:
        Configured OrderStreamHandler instance
    """
    global _stream_handler

    if _stream_handler is None:
        _stream_handler = OrderStreamHandler(order_service=get_order_service())
        logger.info("Order stream handler initialized")

    return _stream_handler


def _get_authorization_policy() -> AuthorizationPolicy:
    admin_emails = [email for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()]
    if admin_emails:
        logger.warning("Using ADMIN_EMAILS allow-list for admin access - development only")
        return AllowListAuthorizationPolicy(admin_emails)
    return ClaimsAuthorizationPolicy()


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    dynamodb_resource = get_dynamodb_resource()
    order_service = get_order_service()

    favorites_repository = FavoritesRepository(
        dynamodb_resource, os.getenv("DYNAMODB_FAVORITES_TABLE", "favorites")
    )
    qr_code_repository = BedQrCodeRepository(
        dynamodb_resource, os.getenv("DYNAMODB_BED_QRCODES_TABLE", "bed-qrcodes")
    )

    image_host_api_key = os.getenv("IMAGE_HOST_API_KEY", "")
    if not image_host_api_key:
        logger.warning("IMAGE_HOST_API_KEY not set - image uploads will fail")

    _fastapi_app = create_app(
        order_service=order_service,
        merchant_order_controller=MerchantOrderController(order_service),
        restaurant_service=RestaurantService(get_restaurant_repository()),
        favorites_service=FavoritesService(favorites_repository),
        bed_qr_code_service=BedQrCodeService(qr_code_repository),
        image_hosting_client=ImageHostingClient(
            os.getenv("IMAGE_HOST_URL", "https://picui.cn/api/v1/upload"), image_host_api_key
        ),
        # Lambda containers only have /tmp as writable storage
        session_storage=FileSessionStorage(
            os.getenv("SESSION_STORAGE_DIR", "/tmp/bedside-ordering-sessions")
        ),
        order_feed=get_order_feed(),
        identity_provider=StaticTokenIdentityProvider.from_config(os.getenv("AUTH_TOKENS", "")),
        authorization_policy=_get_authorization_policy(),
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging and observability.

    Should be called once during Lambda cold start.
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    setup_observability()

    logger.info("Lambda environment initialized")
