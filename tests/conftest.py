"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Callable

# Keeps main.py and lambda_handler.py from building the real app at import time.
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import UTC, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from bedside_ordering.models.location_models import DeliveryLocation  # noqa: E402
from bedside_ordering.models.menu_models import (  # noqa: E402
    MenuItem,
    PaymentMethodType,
    Promotion,
    PromotionDetails,
    PromotionType,
    Restaurant,
    RestaurantPaymentMethod,
    RestaurantStatus,
)
from bedside_ordering.models.order_models import (  # noqa: E402
    CartItem,
    Order,
    OrderStatus,
    PaymentMethod,
)
from bedside_ordering.services.session_storage import InMemorySessionStorage  # noqa: E402


@pytest.fixture
def mock_restaurant_id() -> str:
    """Fixture providing a standard test restaurant ID."""
    return "merchant_123"


@pytest.fixture
def mock_menu_items(mock_restaurant_id: str) -> list[MenuItem]:
    """Fixture providing sample menu items for testing."""
    return [
        MenuItem(
            id="item_1",
            restaurant_id=mock_restaurant_id,
            name="Congee",
            description="Rice porridge with pork",
            price=Decimal("60"),
        ),
        MenuItem(
            id="item_2",
            restaurant_id=mock_restaurant_id,
            name="Steamed Buns",
            description="Four buns",
            price=Decimal("20"),
        ),
        MenuItem(
            id="item_3",
            restaurant_id=mock_restaurant_id,
            name="Soy Milk",
            price=Decimal("5"),
            is_available=False,
        ),
    ]


@pytest.fixture
def mock_promotions() -> list[Promotion]:
    """Fixture providing spend-50-save-5 and spend-100-save-10 promotions."""
    return [
        Promotion(
            id="promo_small",
            description="Spend 50, save 5",
            type=PromotionType.DISCOUNT_FIXED_AMOUNT,
            details=PromotionDetails(min_value=Decimal("50"), amount=Decimal("5")),
        ),
        Promotion(
            id="promo_large",
            description="Spend 100, save 10",
            type=PromotionType.DISCOUNT_FIXED_AMOUNT,
            details=PromotionDetails(min_value=Decimal("100"), amount=Decimal("10")),
        ),
    ]


@pytest.fixture
def mock_restaurant(
    mock_restaurant_id: str, mock_menu_items: list[MenuItem], mock_promotions: list[Promotion]
) -> Restaurant:
    """Fixture providing an approved restaurant with menu, promotions and a payment QR."""
    return Restaurant(
        id=mock_restaurant_id,
        name="Ward Kitchen",
        cuisine="Cantonese",
        menu=mock_menu_items,
        promotions=mock_promotions,
        active_payment_methods=[
            RestaurantPaymentMethod(
                id="pm_1",
                type=PaymentMethodType.WECHAT,
                name="WeChat Pay",
                qr_code_url="https://img.example.com/wechat.png",
            )
        ],
        status=RestaurantStatus.APPROVED,
        owner_uid=mock_restaurant_id,
    )


@pytest.fixture
def mock_delivery_location() -> DeliveryLocation:
    """Fixture providing a bed delivery location."""
    return DeliveryLocation(
        bed_id="B101A",
        details="Inpatient Building 3F, Room 301, Bed A",
        department="Cardiology",
        room="301",
    )


@pytest.fixture
def session_storage() -> InMemorySessionStorage:
    """Fixture providing empty in-memory session storage."""
    return InMemorySessionStorage()


def make_order(**overrides: object) -> Order:
    """Build an order with sensible defaults; any field can be overridden."""
    data: dict = {
        "id": "ord_123",
        "items": [
            CartItem(
                id="item_1",
                restaurant_id="merchant_123",
                name="Congee",
                price=Decimal("60"),
                quantity=2,
            )
        ],
        "total_amount": Decimal("120"),
        "status": OrderStatus.ORDER_PLACED,
        "order_date": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        "delivery_location": "Inpatient Building 3F, Room 301, Bed A",
        "verification_code": "AB12CD",
        "restaurant_name": "Ward Kitchen",
        "restaurant_id": "merchant_123",
        "customer_name": "Li Wei",
        "customer_phone": "13800000000",
        "customer_id": "session_abc",
        "payment_method": PaymentMethod.CASH,
    }
    data.update(overrides)
    return Order(**data)


@pytest.fixture
def mock_order() -> Order:
    """Fixture providing a placed cash order."""
    return make_order()


@pytest.fixture
def order_factory() -> Callable[..., Order]:
    """Fixture providing make_order for tests that need several orders."""
    return make_order
