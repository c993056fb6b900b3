"""
Read-only snapshots the checkout services work on.

Both stored schema variants (``delivery_days``/``cod_available`` and
``delivery_charge``/``delivery_time`` for pincodes) are folded into one record
here. Money is integer paise.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class PincodeRecord:
    pincode: str
    is_active: bool
    city: Optional[str] = None
    state: Optional[str] = None
    area_name: Optional[str] = None
    cod_available: Optional[bool] = None
    delivery_days: Optional[int] = None
    delivery_charge_paise: Optional[int] = None
    delivery_time: Optional[str] = None


@dataclass(frozen=True)
class PromotionRecord:
    id: str
    code: str
    name: str
    type: str
    is_percentage: bool
    start_date: datetime
    end_date: datetime
    percent_off: Decimal = Decimal("0")  # used when is_percentage
    amount_off_paise: int = 0  # used when not is_percentage
    min_order_paise: int = 0
    max_discount_paise: Optional[int] = None  # None or 0 = uncapped
    applicable_product_ids: FrozenSet[str] = field(default_factory=frozenset)
    applicable_category_ids: FrozenSet[str] = field(default_factory=frozenset)
    per_user_limit: int = 0  # 0 = unlimited
    usage_limit: Optional[int] = None
    is_active: bool = True


@dataclass(frozen=True)
class ProductRecord:
    id: str
    category_id: Optional[str]


@dataclass(frozen=True)
class CartLine:
    product_id: str
    unit_price_paise: int
    quantity: int

    @property
    def total_paise(self) -> int:
        return self.unit_price_paise * self.quantity


@dataclass(frozen=True)
class Cart:
    subtotal_paise: int
    items: Tuple[CartLine, ...] = ()


@dataclass(frozen=True)
class Shopper:
    id: str
