"""
Promotion Service

Validates a promotion code against a cart snapshot and prices the discount.

Validation runs in a fixed order and stops at the first failure:
code present, promotion exists and is active, inside its date window,
cart meets the minimum order value, shopper is under the per-user limit,
and at least one cart line falls inside the promotion's scope.

Every failure is returned as a PromotionRejection value. Only lookup
failures (CatalogLookupError) are raised.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from storefront.core.logging_config import get_logger
from storefront.core.money import from_paise, percent_of
from storefront.services.records import Cart, CartLine, ProductRecord, PromotionRecord, Shopper

logger = get_logger("promotion_service")


class RejectionReason(str, enum.Enum):
    CODE_REQUIRED = "CODE_REQUIRED"
    INVALID_CODE = "INVALID_CODE"
    EXPIRED_OR_NOT_STARTED = "EXPIRED_OR_NOT_STARTED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    NOT_APPLICABLE_TO_CART = "NOT_APPLICABLE_TO_CART"


class PromotionScope(str, enum.Enum):
    PRODUCTS = "products"
    CATEGORIES = "categories"
    CART = "cart"


@dataclass(frozen=True)
class PromotionRejection:
    reason: RejectionReason
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    valid = False


@dataclass(frozen=True)
class PricingResult:
    promotion: PromotionRecord
    scope: PromotionScope
    discount_paise: int
    applicable_subtotal_paise: int
    matched_item_ids: Tuple[str, ...]

    valid = True

    @property
    def discount(self) -> Decimal:
        return from_paise(self.discount_paise)

    @property
    def promotion_code(self) -> str:
        return self.promotion.code


PricingOutcome = Union[PricingResult, PromotionRejection]


def _utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_scope(promotion: PromotionRecord) -> PromotionScope:
    """Products beat categories beat the whole cart; scopes never combine."""
    if promotion.applicable_product_ids:
        return PromotionScope.PRODUCTS
    if promotion.applicable_category_ids:
        return PromotionScope.CATEGORIES
    return PromotionScope.CART


def compute_discount(promotion: PromotionRecord, applicable_subtotal_paise: int) -> int:
    """Discount in paise: percentage of the applicable subtotal or a flat amount, then capped."""
    if promotion.is_percentage:
        discount = percent_of(applicable_subtotal_paise, promotion.percent_off)
    else:
        # A flat discount is one deduction no matter how many lines matched
        discount = promotion.amount_off_paise

    if promotion.max_discount_paise and discount > promotion.max_discount_paise:
        discount = promotion.max_discount_paise
    return discount


class PromotionEngine:
    def __init__(
        self,
        get_promotion_by_code: Callable[[str], Optional[PromotionRecord]],
        get_user_promotion_usage_count: Callable[[str, str], int],
        get_products_by_ids: Callable[[List[str]], List[ProductRecord]],
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._get_promotion_by_code = get_promotion_by_code
        self._get_usage_count = get_user_promotion_usage_count
        self._get_products_by_ids = get_products_by_ids
        self._clock = clock

    def validate_and_price(self, code: str, cart: Cart, user: Optional[Shopper] = None) -> PricingOutcome:
        if not code:
            return PromotionRejection(RejectionReason.CODE_REQUIRED, "Promotion code is required")

        promotion = self._get_promotion_by_code(code)
        if promotion is None or not promotion.is_active:
            logger.info(f"Promotion rejected: unknown or inactive code {code!r}")
            return PromotionRejection(RejectionReason.INVALID_CODE, "Invalid promotion code")

        now = _utc(self._clock())
        start, end = _utc(promotion.start_date), _utc(promotion.end_date)
        if now < start or now > end:
            return PromotionRejection(
                RejectionReason.EXPIRED_OR_NOT_STARTED,
                "Promotion code has expired or not yet active",
                {"start_date": start.isoformat(), "end_date": end.isoformat()},
            )

        if cart.subtotal_paise < promotion.min_order_paise:
            minimum = from_paise(promotion.min_order_paise)
            shortfall = from_paise(promotion.min_order_paise - cart.subtotal_paise)
            return PromotionRejection(
                RejectionReason.BELOW_MINIMUM,
                f"Minimum order value of ₹{minimum} required for this promotion",
                {"min_order_value": float(minimum), "shortfall": float(shortfall)},
            )

        if user is not None and promotion.per_user_limit > 0:
            usage_count = self._get_usage_count(user.id, promotion.id)
            if usage_count >= promotion.per_user_limit:
                logger.info(
                    f"Promotion {promotion.code} rejected: usage limit reached",
                    extra={"user_id": user.id, "usage_count": usage_count, "per_user_limit": promotion.per_user_limit},
                )
                return PromotionRejection(
                    RejectionReason.USAGE_LIMIT_REACHED,
                    "You have already used this promotion the maximum number of times",
                    {"per_user_limit": promotion.per_user_limit},
                )

        scope = resolve_scope(promotion)
        if scope is PromotionScope.CART:
            matched = list(cart.items)
            applicable_subtotal = cart.subtotal_paise
        else:
            matched = self._match_lines(promotion, scope, cart.items)
            if not matched:
                return PromotionRejection(
                    RejectionReason.NOT_APPLICABLE_TO_CART,
                    "This promotion does not apply to any items in your cart",
                )
            applicable_subtotal = sum(line.total_paise for line in matched)

        discount = compute_discount(promotion, applicable_subtotal)
        logger.debug(
            f"Promotion {promotion.code} priced",
            extra={"scope": scope.value, "applicable_subtotal_paise": applicable_subtotal, "discount_paise": discount},
        )
        return PricingResult(
            promotion=promotion,
            scope=scope,
            discount_paise=discount,
            applicable_subtotal_paise=applicable_subtotal,
            matched_item_ids=tuple(dict.fromkeys(line.product_id for line in matched)),
        )

    def _match_lines(self, promotion: PromotionRecord, scope: PromotionScope, items: Tuple[CartLine, ...]) -> List[CartLine]:
        if scope is PromotionScope.PRODUCTS:
            return [line for line in items if line.product_id in promotion.applicable_product_ids]

        # Categories come from the catalogue, never from the client
        product_ids = list(dict.fromkeys(line.product_id for line in items))
        if not product_ids:
            return []
        categories = {p.id: p.category_id for p in self._get_products_by_ids(product_ids)}
        return [
            line for line in items
            if categories.get(line.product_id) in promotion.applicable_category_ids
        ]


def usage_metrics(totals: Dict[str, Any], usage_limit: Optional[int]) -> Dict[str, Any]:
    """Admin view of how often a promotion has been redeemed."""
    total_uses = totals["total_uses"]
    return {
        "total_uses": total_uses,
        "distinct_users": totals["distinct_users"],
        "total_discount": float(from_paise(totals["total_discount_paise"])),
        "usage_limit": usage_limit,
        "remaining_uses": max(usage_limit - total_uses, 0) if usage_limit else None,
    }
