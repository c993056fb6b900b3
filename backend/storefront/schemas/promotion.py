from pydantic import Field, field_validator, model_validator
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal

from storefront.core.money import to_paise
from storefront.models.promotion import PromotionTypeEnum
from storefront.schemas.pincode import CamelModel
from storefront.services.records import Cart, CartLine


class CartItemIn(CamelModel):
    product_id: str
    price: Decimal = Field(ge=0)  # unit price, INR
    quantity: int = Field(gt=0)

    @field_validator("product_id", mode="before")
    @classmethod
    def product_id_str(cls, v: Any) -> str:
        return str(v) if v is not None else v


class PromotionValidateRequest(CamelModel):
    code: str = ""
    cart_total: Decimal = Field(ge=0)  # INR
    cart_items: List[CartItemIn] = []

    @field_validator("code", mode="before")
    @classmethod
    def code_trim(cls, v: Optional[str]) -> str:
        # Codes are case-sensitive; only surrounding whitespace is dropped
        return v.strip() if v else ""

    def to_cart(self) -> Cart:
        return Cart(
            subtotal_paise=to_paise(self.cart_total),
            items=tuple(
                CartLine(product_id=i.product_id, unit_price_paise=to_paise(i.price), quantity=i.quantity)
                for i in self.cart_items
            ),
        )


class AppliedPromotion(CamelModel):
    id: str
    code: str
    name: str
    type: str
    discount: float  # INR, two decimal places
    applicable_items: List[str]


class PromotionValidateResponse(CamelModel):
    valid: bool = True
    promotion: AppliedPromotion
    final_total: float


class ActivePromotionResponse(CamelModel):
    id: str
    name: str
    code: str
    type: str
    value: float
    is_percentage: bool
    min_order_value: float
    start_date: datetime
    end_date: datetime


def check_percentage_value(is_percentage: bool, value: Decimal) -> None:
    if is_percentage and value > 100:
        raise ValueError("percentage value must be between 0 and 100")


def _strip_code(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("code must not be blank")
    return v


class PromotionCreate(CamelModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1, max_length=64)
    type: PromotionTypeEnum
    value: Decimal = Field(ge=0)
    is_percentage: Optional[bool] = None  # defaults to type == percentage
    min_order_value: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    applicable_products: List[int] = []
    applicable_categories: List[int] = []
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int] = Field(default=None, gt=0)
    per_user_limit: Optional[int] = Field(default=1, ge=0)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def code_trim(cls, v: str) -> str:
        return _strip_code(v)

    @model_validator(mode="after")
    def check_value_and_window(self):
        if self.is_percentage is None:
            self.is_percentage = self.type == PromotionTypeEnum.PERCENTAGE
        check_percentage_value(self.is_percentage, self.value)
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PromotionUpdate(CamelModel):
    """Partial update. Omitted fields are left alone; null is only accepted for nullable columns."""
    name: Optional[str] = Field(default=None, min_length=1)
    code: Optional[str] = Field(default=None, min_length=1, max_length=64)
    type: Optional[PromotionTypeEnum] = None
    value: Optional[Decimal] = Field(default=None, ge=0)
    is_percentage: Optional[bool] = None
    min_order_value: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    applicable_products: Optional[List[int]] = None
    applicable_categories: Optional[List[int]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, gt=0)
    per_user_limit: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator(
        "name", "code", "type", "value", "is_percentage", "min_order_value",
        "start_date", "end_date", "is_active",
        mode="before",
    )
    @classmethod
    def not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("code")
    @classmethod
    def code_trim(cls, v: Optional[str]) -> Optional[str]:
        return _strip_code(v) if v is not None else v


class PromotionResponse(CamelModel):
    id: int
    name: str
    code: str
    type: PromotionTypeEnum
    value: float
    is_percentage: bool
    min_order_value: float
    max_discount: Optional[float]
    applicable_products: List[int]
    applicable_categories: List[int]
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int]
    per_user_limit: Optional[int]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("applicable_products", "applicable_categories", mode="before")
    @classmethod
    def related_ids(cls, v: Any) -> List[int]:
        return [getattr(item, "id", item) for item in (v or [])]


class PromotionListResponse(CamelModel):
    promotions: List[PromotionResponse]
    total: int


class PromotionUsageMetrics(CamelModel):
    total_uses: int
    distinct_users: int
    total_discount: float
    usage_limit: Optional[int]
    remaining_uses: Optional[int]
