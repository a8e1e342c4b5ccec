"""Unit tests for the FastAPI customer, merchant and admin endpoints."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from bedside_ordering.auth.authorization import ClaimsAuthorizationPolicy
from bedside_ordering.auth.identity import AuthenticatedUser, StaticTokenIdentityProvider
from bedside_ordering.exceptions import (
    AlreadyRated,
    CancellationNotConfirmed,
    InvalidTransition,
    OrderingError,
    OrderNotFound,
    PersistenceFailure,
    RestaurantMismatch,
    RestaurantNotFound,
)
from bedside_ordering.handlers.api_handler import create_app, status_code_for
from bedside_ordering.models.location_models import BedQrCode
from bedside_ordering.models.menu_models import MenuItem, Restaurant, RestaurantStatus
from bedside_ordering.models.order_models import Order, OrderStatus, PaymentMethod
from bedside_ordering.services.image_hosting_client import ImageHostingClient
from bedside_ordering.services.location_service import BedQrCodeService, FavoritesService
from bedside_ordering.services.merchant_order_service import MerchantOrderController
from bedside_ordering.services.order_feed import OrderFeed
from bedside_ordering.services.order_service import OrderService
from bedside_ordering.services.restaurant_service import RestaurantService
from bedside_ordering.services.session_storage import InMemorySessionStorage

SESSION = {"X-Session-Id": "session_abc"}
MERCHANT = {"Authorization": "Bearer merchant-token"}
ADMIN = {"Authorization": "Bearer admin-token"}


@pytest.fixture
def client(mock_restaurant: Restaurant) -> TestClient:
    """Create a test client with mocked services."""
    restaurant_service = MagicMock(spec=RestaurantService)
    restaurant_service.get_restaurant = AsyncMock(return_value=mock_restaurant)
    restaurant_service.get_approved_restaurant = AsyncMock(return_value=mock_restaurant)

    identity_provider = StaticTokenIdentityProvider(
        {
            "merchant-token": AuthenticatedUser("merchant_123"),
            "admin-token": AuthenticatedUser("admin_1", claims={"role": "admin"}),
        }
    )

    app = create_app(
        order_service=MagicMock(spec=OrderService),
        merchant_order_controller=MagicMock(spec=MerchantOrderController),
        restaurant_service=restaurant_service,
        favorites_service=MagicMock(spec=FavoritesService),
        bed_qr_code_service=MagicMock(spec=BedQrCodeService),
        image_hosting_client=MagicMock(spec=ImageHostingClient),
        session_storage=InMemorySessionStorage(),
        order_feed=MagicMock(spec=OrderFeed),
        identity_provider=identity_provider,
        authorization_policy=ClaimsAuthorizationPolicy(),
    )
    return TestClient(app)


@pytest.mark.unit
class TestHealthAndErrors:
    """Test suite for the health check and error mapping."""

    def test_health_check(self, client: TestClient) -> None:
        """Test health check endpoint returns 200."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (RestaurantMismatch("a", "b"), 409),
            (InvalidTransition("ord_1", "Delivered", "Preparing"), 409),
            (AlreadyRated("ord_1"), 409),
            (OrderNotFound("ord_1"), 404),
            (PersistenceFailure("down"), 503),
            (OrderingError("other"), 400),
        ],
    )
    def test_status_code_for(self, error: OrderingError, status_code: int) -> None:
        """Test the HTTP status chosen for each error type."""
        assert status_code_for(error) == status_code

    def test_error_body(self, client: TestClient) -> None:
        """Test that ordering errors become JSON error bodies."""
        client.app.state.order_service.get_order_for_customer = AsyncMock(
            side_effect=OrderNotFound("ord_404")
        )

        response = client.get("/orders/ord_404", headers=SESSION)

        assert response.status_code == 404
        assert response.json() == {"error": "OrderNotFound", "detail": "Order ord_404 not found"}

    def test_missing_session_header(self, client: TestClient) -> None:
        """Test that customer routes require X-Session-Id."""
        response = client.get("/cart")

        assert response.status_code == 400


@pytest.mark.unit
class TestRestaurantEndpoints:
    """Test suite for customer restaurant browsing."""

    def test_list_restaurants(self, client: TestClient, mock_restaurant: Restaurant) -> None:
        """Test listing approved restaurants."""
        client.app.state.restaurant_service.list_approved_restaurants = AsyncMock(
            return_value=[mock_restaurant]
        )

        response = client.get("/restaurants")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["id"] == "merchant_123"
        assert data[0]["status"] == "Approved"

    def test_unapproved_restaurant_not_found(self, client: TestClient) -> None:
        """Test that hidden restaurants return 404."""
        client.app.state.restaurant_service.get_approved_restaurant = AsyncMock(
            side_effect=RestaurantNotFound("merchant_999")
        )

        response = client.get("/restaurants/merchant_999")

        assert response.status_code == 404


@pytest.mark.unit
class TestCartEndpoints:
    """Test suite for cart endpoints."""

    def _add(self, client: TestClient, item_id: str = "item_1"):
        return client.post(
            "/cart/items",
            json={"restaurant_id": "merchant_123", "item_id": item_id},
            headers=SESSION,
        )

    def test_empty_cart(self, client: TestClient) -> None:
        """Test a new session's cart."""
        response = client.get("/cart", headers=SESSION)

        assert response.status_code == 200
        data = response.json()
        assert data["restaurant_id"] is None
        assert data["items"] == []
        assert Decimal(data["total"]) == Decimal("0")

    def test_add_item_applies_best_promotion(self, client: TestClient) -> None:
        """Test that adding 2 x 60 quotes 120 - 10 = 110."""
        self._add(client)
        response = self._add(client)

        assert response.status_code == 200
        data = response.json()
        assert data["item_count"] == 2
        assert Decimal(data["subtotal"]) == Decimal("120")
        assert Decimal(data["discount"]) == Decimal("10")
        assert Decimal(data["total"]) == Decimal("110")
        assert data["promotion_id"] == "promo_large"

    def test_add_unavailable_item(self, client: TestClient) -> None:
        """Test that sold-out items cannot be added."""
        response = self._add(client, "item_3")

        assert response.status_code == 409

    def test_add_unknown_item(self, client: TestClient) -> None:
        """Test that unknown items return 404."""
        response = self._add(client, "missing")

        assert response.status_code == 404
        assert response.json()["error"] == "MenuItemNotFound"

    def test_add_item_from_other_restaurant(
        self, client: TestClient, mock_restaurant: Restaurant, mock_menu_items: list[MenuItem]
    ) -> None:
        """Test that the cart stays with one restaurant."""
        self._add(client)
        other_item = mock_menu_items[1].model_copy(update={"restaurant_id": "merchant_999"})
        client.app.state.restaurant_service.get_approved_restaurant = AsyncMock(
            return_value=mock_restaurant.model_copy(
                update={"id": "merchant_999", "menu": [other_item]}
            )
        )

        response = client.post(
            "/cart/items",
            json={"restaurant_id": "merchant_999", "item_id": "item_2"},
            headers=SESSION,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "RestaurantMismatch"

    def test_update_quantity(self, client: TestClient) -> None:
        """Test changing and zeroing an item's quantity."""
        self._add(client)

        response = client.put("/cart/items/item_1", json={"quantity": 3}, headers=SESSION)
        assert response.json()["item_count"] == 3

        response = client.put("/cart/items/item_1", json={"quantity": 0}, headers=SESSION)
        assert response.json()["items"] == []

    def test_negative_quantity(self, client: TestClient) -> None:
        """Test that negative quantities are rejected."""
        self._add(client)

        response = client.put("/cart/items/item_1", json={"quantity": -1}, headers=SESSION)

        assert response.status_code == 422

    def test_carts_are_per_session(self, client: TestClient) -> None:
        """Test that another session does not see the cart."""
        self._add(client)

        response = client.get("/cart", headers={"X-Session-Id": "session_other"})

        assert response.json()["items"] == []

    def test_clear_cart(self, client: TestClient) -> None:
        """Test emptying the cart."""
        self._add(client)

        response = client.delete("/cart", headers=SESSION)

        assert response.status_code == 204
        assert client.get("/cart", headers=SESSION).json()["items"] == []

    def test_reorder(self, client: TestClient, mock_order: Order) -> None:
        """Test refilling the cart from a past order."""
        client.app.state.order_service.get_order_for_customer = AsyncMock(return_value=mock_order)

        response = client.post("/cart/reorder/ord_123", headers=SESSION)

        assert response.status_code == 200
        assert response.json()["item_count"] == 2
        client.app.state.order_service.get_order_for_customer.assert_awaited_once_with(
            "ord_123", "session_abc"
        )


@pytest.mark.unit
class TestDeliveryLocationEndpoints:
    """Test suite for delivery location endpoints."""

    def test_no_location(self, client: TestClient) -> None:
        """Test that a new session has no location."""
        response = client.get("/delivery-location", headers=SESSION)

        assert response.status_code == 200
        assert response.json() is None

    def test_scan(self, client: TestClient) -> None:
        """Test scanning a bed QR code."""
        response = client.post(
            "/delivery-location/scan",
            json={"payload": '{"bedId": "B7", "details": "Ward 2, Bed 7"}'},
            headers=SESSION,
        )

        assert response.status_code == 200
        assert response.json()["bed_id"] == "B7"
        stored = client.get("/delivery-location", headers=SESSION).json()
        assert stored["details"] == "Ward 2, Bed 7"

    def test_invalid_scan(self, client: TestClient) -> None:
        """Test that an unusable QR payload returns 422."""
        response = client.post(
            "/delivery-location/scan", json={"payload": "hello"}, headers=SESSION
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidQrCode"

    def test_manual_details(self, client: TestClient) -> None:
        """Test entering a location by hand."""
        response = client.put(
            "/delivery-location", json={"details": "Lobby bench"}, headers=SESSION
        )

        assert response.status_code == 200
        assert response.json()["bed_id"].startswith("manual-")

    def test_blank_details(self, client: TestClient) -> None:
        """Test that whitespace-only details are rejected."""
        response = client.put("/delivery-location", json={"details": "   "}, headers=SESSION)

        assert response.status_code == 422


@pytest.mark.unit
class TestCheckoutEndpoint:
    """Test suite for checkout."""

    CHECKOUT = {
        "customer_name": "Li Wei",
        "customer_phone": "13800000000",
        "payment_method": "cash",
    }

    def _prepare(self, client: TestClient) -> None:
        client.post(
            "/cart/items",
            json={"restaurant_id": "merchant_123", "item_id": "item_1"},
            headers=SESSION,
        )
        client.post(
            "/delivery-location/scan",
            json={"payload": '{"bedId": "B101A", "details": "Bed A"}'},
            headers=SESSION,
        )

    def test_checkout(self, client: TestClient, mock_order: Order) -> None:
        """Test placing an order."""
        self._prepare(client)
        client.app.state.order_service.find_placed_order = AsyncMock(return_value=None)
        client.app.state.order_service.add_order = AsyncMock(return_value=mock_order)

        response = client.post(
            "/checkout", json={**self.CHECKOUT, "order_id": "ord_123"}, headers=SESSION
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "ord_123"
        assert data["status"] == "Order Placed"
        assert Decimal(data["total_amount"]) == Decimal("120")

        kwargs = client.app.state.order_service.add_order.call_args.kwargs
        assert kwargs["payment_method"] == PaymentMethod.CASH
        assert kwargs["order_id"] == "ord_123"
        assert kwargs["delivery_location"].bed_id == "B101A"
        assert kwargs["customer"].customer_id == "session_abc"
        assert kwargs["restaurant"].id == "merchant_123"

    def test_checkout_replay_with_empty_cart(self, client: TestClient, mock_order: Order) -> None:
        """Test that a resent order id returns the placed order after the cart was cleared."""
        client.app.state.order_service.find_placed_order = AsyncMock(return_value=mock_order)
        client.app.state.order_service.add_order = AsyncMock()

        response = client.post(
            "/checkout", json={**self.CHECKOUT, "order_id": "ord_123"}, headers=SESSION
        )

        assert response.status_code == 201
        assert response.json()["id"] == "ord_123"
        client.app.state.order_service.find_placed_order.assert_awaited_once_with(
            "ord_123", "session_abc"
        )
        client.app.state.order_service.add_order.assert_not_awaited()

    def test_checkout_empty_cart(self, client: TestClient) -> None:
        """Test that an empty cart cannot be checked out."""
        response = client.post("/checkout", json=self.CHECKOUT, headers=SESSION)

        assert response.status_code == 422
        assert response.json()["error"] == "EmptyCart"

    def test_checkout_without_location(self, client: TestClient) -> None:
        """Test that a delivery location is required."""
        client.post(
            "/cart/items",
            json={"restaurant_id": "merchant_123", "item_id": "item_1"},
            headers=SESSION,
        )

        response = client.post("/checkout", json=self.CHECKOUT, headers=SESSION)

        assert response.status_code == 422

    def test_checkout_invalid_payment_method(self, client: TestClient) -> None:
        """Test request validation of the payment method."""
        self._prepare(client)

        response = client.post(
            "/checkout", json={**self.CHECKOUT, "payment_method": "card"}, headers=SESSION
        )

        assert response.status_code == 422

    def test_checkout_persistence_failure(self, client: TestClient) -> None:
        """Test that a failed write returns 503."""
        self._prepare(client)
        client.app.state.order_service.add_order = AsyncMock(
            side_effect=PersistenceFailure("Order could not be saved")
        )

        response = client.post("/checkout", json=self.CHECKOUT, headers=SESSION)

        assert response.status_code == 503


@pytest.mark.unit
class TestCustomerOrderEndpoints:
    """Test suite for the customer's orders."""

    def test_list_orders(self, client: TestClient, mock_order: Order) -> None:
        """Test listing the session's orders."""
        client.app.state.order_service.get_orders_for_customer = AsyncMock(
            return_value=[mock_order]
        )

        response = client.get("/orders", headers=SESSION)

        assert response.status_code == 200
        assert [order["id"] for order in response.json()] == ["ord_123"]
        client.app.state.order_service.get_orders_for_customer.assert_awaited_once_with(
            "session_abc"
        )

    def test_confirm_delivery(self, client: TestClient, order_factory) -> None:
        """Test confirming receipt."""
        client.app.state.order_service.confirm_delivery = AsyncMock(
            return_value=order_factory(status=OrderStatus.DELIVERED)
        )

        response = client.post("/orders/ord_123/confirm-delivery", headers=SESSION)

        assert response.status_code == 200
        assert response.json()["status"] == "Delivered"

    def test_rate_twice(self, client: TestClient) -> None:
        """Test that a second rating returns 409."""
        client.app.state.order_service.set_rating = AsyncMock(side_effect=AlreadyRated("ord_123"))

        response = client.post("/orders/ord_123/rating", json={"rating": 4}, headers=SESSION)

        assert response.status_code == 409
        client.app.state.order_service.set_rating.assert_awaited_once_with(
            "ord_123", 4, customer_id="session_abc"
        )


@pytest.mark.unit
class TestFavoriteEndpoints:
    """Test suite for favorites."""

    def test_toggle_favorite(self, client: TestClient) -> None:
        """Test toggling a favorite on."""
        client.app.state.favorites_service.toggle_favorite = AsyncMock(return_value=True)

        response = client.post(
            "/favorites/toggle",
            json={"restaurant_id": "merchant_123", "item_id": "item_1"},
            headers=SESSION,
        )

        assert response.status_code == 200
        assert response.json() == {"is_favorite": True}
        menu_item = client.app.state.favorites_service.toggle_favorite.call_args.args[1]
        assert menu_item.id == "item_1"

    def test_remove_favorite(self, client: TestClient) -> None:
        """Test deleting a favorite."""
        client.app.state.favorites_service.remove_favorite = AsyncMock()

        response = client.delete("/favorites/merchant_123/item_1", headers=SESSION)

        assert response.status_code == 204
        client.app.state.favorites_service.remove_favorite.assert_awaited_once_with(
            "session_abc", "merchant_123", "item_1"
        )


@pytest.mark.unit
class TestMerchantEndpoints:
    """Test suite for merchant endpoints."""

    def test_requires_token(self, client: TestClient) -> None:
        """Test that merchant routes need a bearer token."""
        assert client.get("/merchant/orders").status_code == 401
        assert (
            client.get("/merchant/orders", headers={"Authorization": "Bearer nope"}).status_code
            == 401
        )

    def test_register_restaurant(self, client: TestClient, mock_restaurant: Restaurant) -> None:
        """Test that the restaurant is registered under the caller's uid."""
        client.app.state.restaurant_service.register_restaurant = AsyncMock(
            return_value=mock_restaurant.model_copy(update={"status": RestaurantStatus.PENDING})
        )

        response = client.post(
            "/merchant/restaurant",
            json={"name": "Ward Kitchen", "cuisine": "Cantonese"},
            headers=MERCHANT,
        )

        assert response.status_code == 201
        assert response.json()["status"] == "Pending"
        client.app.state.restaurant_service.register_restaurant.assert_awaited_once_with(
            owner_uid="merchant_123", name="Ward Kitchen", cuisine="Cantonese"
        )

    def test_add_menu_item(self, client: TestClient, mock_menu_items: list[MenuItem]) -> None:
        """Test adding an item to the merchant's menu."""
        client.app.state.restaurant_service.add_menu_item = AsyncMock(
            return_value=mock_menu_items[0]
        )

        response = client.post(
            "/merchant/menu", json={"name": "Congee", "price": "60"}, headers=MERCHANT
        )

        assert response.status_code == 201
        kwargs = client.app.state.restaurant_service.add_menu_item.call_args.kwargs
        assert kwargs["restaurant_id"] == "merchant_123"
        assert kwargs["price"] == Decimal("60")

    def test_add_menu_item_requires_positive_price(self, client: TestClient) -> None:
        """Test request validation of the price."""
        response = client.post(
            "/merchant/menu", json={"name": "Congee", "price": "0"}, headers=MERCHANT
        )

        assert response.status_code == 422

    def test_save_promotions_assigns_ids(self, client: TestClient) -> None:
        """Test that new promotions get generated ids."""
        client.app.state.restaurant_service.save_promotions = AsyncMock(
            side_effect=lambda _restaurant_id, promotions: promotions
        )

        response = client.put(
            "/merchant/promotions",
            json=[
                {
                    "description": "Spend 30, save 3",
                    "details": {"min_value": "30", "amount": "3"},
                }
            ],
            headers=MERCHANT,
        )

        assert response.status_code == 200
        assert response.json()[0]["id"].startswith("promo_")

    def test_upload_image(self, client: TestClient) -> None:
        """Test forwarding an image to the image host."""
        client.app.state.image_hosting_client.upload_image = AsyncMock(
            return_value="https://img.example.com/dish.png"
        )

        response = client.post(
            "/merchant/images",
            files={"file": ("dish.png", b"\x89PNG", "image/png")},
            headers=MERCHANT,
        )

        assert response.status_code == 200
        assert response.json() == {"url": "https://img.example.com/dish.png"}

    def test_upload_non_image(self, client: TestClient) -> None:
        """Test that only images are accepted."""
        response = client.post(
            "/merchant/images",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=MERCHANT,
        )

        assert response.status_code == 422

    def test_upload_image_host_failure(self, client: TestClient) -> None:
        """Test that a failed upload returns 502."""
        client.app.state.image_hosting_client.upload_image = AsyncMock(return_value=None)

        response = client.post(
            "/merchant/images",
            files={"file": ("dish.png", b"\x89PNG", "image/png")},
            headers=MERCHANT,
        )

        assert response.status_code == 502

    def test_list_orders_with_actions(self, client: TestClient, order_factory) -> None:
        """Test the merchant order list with available actions."""
        client.app.state.merchant_order_controller.list_orders = AsyncMock(
            return_value=[
                order_factory(status=OrderStatus.PENDING_PAYMENT),
                order_factory(id="ord_2", status=OrderStatus.DELIVERED),
            ]
        )

        response = client.get("/merchant/orders", headers=MERCHANT)

        assert response.status_code == 200
        pending, delivered = response.json()
        assert pending["next_status"] == "Order Placed"
        assert pending["can_advance"] is True
        assert pending["advance_label"] == "Confirm payment and accept order"
        assert delivered["next_status"] is None
        assert delivered["can_cancel"] is False

    def test_advance_order(self, client: TestClient, order_factory) -> None:
        """Test advancing an order."""
        client.app.state.merchant_order_controller.advance = AsyncMock(
            return_value=order_factory(status=OrderStatus.PREPARING)
        )

        response = client.post("/merchant/orders/ord_123/advance", headers=MERCHANT)

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "Preparing"
        client.app.state.merchant_order_controller.advance.assert_awaited_once_with(
            "ord_123", "merchant_123"
        )

    def test_cancel_without_confirmation(self, client: TestClient) -> None:
        """Test that an unconfirmed cancel returns 409."""
        client.app.state.merchant_order_controller.cancel = AsyncMock(
            side_effect=CancellationNotConfirmed("Cancellation must be confirmed")
        )

        response = client.post("/merchant/orders/ord_123/cancel", json={}, headers=MERCHANT)

        assert response.status_code == 409
        client.app.state.merchant_order_controller.cancel.assert_awaited_once_with(
            "ord_123", "merchant_123", False
        )


@pytest.mark.unit
class TestAdminEndpoints:
    """Test suite for admin endpoints."""

    def test_merchant_is_not_admin(self, client: TestClient) -> None:
        """Test that non-admin users get 403."""
        response = client.get("/admin/restaurants", headers=MERCHANT)

        assert response.status_code == 403

    def test_set_restaurant_status(self, client: TestClient, mock_restaurant: Restaurant) -> None:
        """Test approving a restaurant."""
        client.app.state.restaurant_service.set_restaurant_status = AsyncMock(
            return_value=mock_restaurant
        )

        response = client.put(
            "/admin/restaurants/merchant_123/status", json={"status": "Approved"}, headers=ADMIN
        )

        assert response.status_code == 200
        client.app.state.restaurant_service.set_restaurant_status.assert_awaited_once_with(
            "merchant_123", RestaurantStatus.APPROVED
        )

    def test_invalid_restaurant_status(self, client: TestClient) -> None:
        """Test request validation of the status."""
        response = client.put(
            "/admin/restaurants/merchant_123/status", json={"status": "Open"}, headers=ADMIN
        )

        assert response.status_code == 422

    def test_batch_create_qr_codes(self, client: TestClient) -> None:
        """Test creating a range of bed QR codes."""
        qr_code = BedQrCode(
            id="qr_1",
            bed_id="A-1",
            details="Bed 1",
            qr_code_value='{"bedId": "A-1", "details": "Bed 1"}',
            created_at=datetime(2024, 5, 1, tzinfo=UTC),
        )
        client.app.state.bed_qr_code_service.batch_create = AsyncMock(return_value=[qr_code])

        response = client.post(
            "/admin/qrcodes/batch",
            json={"prefix": "A-", "count": 1, "details_template": "Bed {number}"},
            headers=ADMIN,
        )

        assert response.status_code == 201
        assert response.json()[0]["bed_id"] == "A-1"
        kwargs = client.app.state.bed_qr_code_service.batch_create.call_args.kwargs
        assert kwargs["start_number"] == 1
        assert kwargs["suffix"] == ""

    def test_batch_count_limit(self, client: TestClient) -> None:
        """Test that batches over 100 are rejected."""
        response = client.post(
            "/admin/qrcodes/batch",
            json={"prefix": "A-", "count": 101, "details_template": "Bed {number}"},
            headers=ADMIN,
        )

        assert response.status_code == 422
