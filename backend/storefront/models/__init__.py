from storefront.models.catalog import Category, Product
from storefront.models.pincode import ServiceablePincode
from storefront.models.promotion import (
    Promotion,
    PromotionTypeEnum,
    PromotionUsage,
    promotion_categories,
    promotion_products,
)

__all__ = [
    "Category",
    "Product",
    "ServiceablePincode",
    "Promotion",
    "PromotionTypeEnum",
    "PromotionUsage",
    "promotion_categories",
    "promotion_products",
]
