"""Promotion-aware pricing for carts.

Everything here is a pure function of its inputs. The same selection rule is
used for the price shown in the cart and for the price written on the order,
but only a ConfirmedQuote (computed at persistence time) is ever stored.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from bedside_ordering.models.menu_models import Promotion, PromotionType
from bedside_ordering.models.order_models import CartItem

ZERO = Decimal("0")


@dataclass(frozen=True)
class DiscountResult:
    """Outcome of best-discount selection.

    Attributes:
        promotion: The winning promotion, or None if none applies
        discount: Discount amount, never larger than the subtotal
    """

    promotion: Promotion | None
    discount: Decimal


@dataclass(frozen=True)
class Quote:
    """Subtotal, discount and payable total for a set of cart items."""

    subtotal: Decimal
    discount: Decimal
    total: Decimal
    promotion: Promotion | None


@dataclass(frozen=True)
class DisplayedQuote(Quote):
    """Advisory quote for display in the cart and at checkout."""

    kind: Literal["displayed"] = "displayed"


@dataclass(frozen=True)
class ConfirmedQuote(Quote):
    """Quote recomputed against current promotions at the moment of order creation."""

    kind: Literal["confirmed"] = "confirmed"


def compute_subtotal(items: Iterable[CartItem]) -> Decimal:
    """Sum of price * quantity over the items."""
    return sum((item.price * item.quantity for item in items), ZERO)


def compute_best_discount(cart_subtotal: Decimal, promotions: Sequence[Promotion]) -> DiscountResult:
    """Select the best applicable fixed-amount promotion.

    A promotion is applicable when it is active, is a fixed-amount discount and
    its minimum spend (default 0) is met. The largest amount wins; on a tie the
    first one in input order is kept.

    Args:
        cart_subtotal: Pre-discount cart subtotal
        promotions: The restaurant's promotion list, in stored order

    Returns:
        DiscountResult with the winning promotion and the discount, clamped to
        the subtotal
    """
    best: Promotion | None = None
    best_amount = ZERO

    for promotion in promotions:
        if not promotion.is_active or promotion.type != PromotionType.DISCOUNT_FIXED_AMOUNT:
            continue

        min_value = promotion.details.min_value or ZERO
        if cart_subtotal < min_value:
            continue

        amount = promotion.details.amount or ZERO
        if best is None or amount > best_amount:
            best = promotion
            best_amount = amount

    if best is None:
        return DiscountResult(promotion=None, discount=ZERO)

    return DiscountResult(promotion=best, discount=min(best_amount, max(cart_subtotal, ZERO)))


def quote_cart(items: Sequence[CartItem], promotions: Sequence[Promotion]) -> DisplayedQuote:
    """Build the advisory quote shown to the customer."""
    subtotal = compute_subtotal(items)
    result = compute_best_discount(subtotal, promotions)
    return DisplayedQuote(
        subtotal=subtotal,
        discount=result.discount,
        total=subtotal - result.discount,
        promotion=result.promotion,
    )


def confirm_quote(items: Sequence[CartItem], promotions: Sequence[Promotion]) -> ConfirmedQuote:
    """Recompute the quote for persistence.

    A promotion that ends up contributing nothing (zero amount or zero
    subtotal) is dropped so that the stored applied promotion always explains
    the stored discount.
    """
    subtotal = compute_subtotal(items)
    result = compute_best_discount(subtotal, promotions)
    promotion = result.promotion if result.discount > ZERO else None
    return ConfirmedQuote(
        subtotal=subtotal,
        discount=result.discount,
        total=subtotal - result.discount,
        promotion=promotion,
    )
