"""
SQLAlchemy-backed lookups for the checkout services.

This is the data-access boundary: rows are turned into the frozen records in
``storefront.services.records`` and stored rupee amounts become paise.
Database failures are re-raised as CatalogLookupError so callers can tell
an unreachable store apart from a normal "not found".
"""
from datetime import datetime
from decimal import Decimal
from functools import wraps
from typing import Dict, Iterable, List, Optional

from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.logging_config import get_logger
from storefront.core.money import to_paise
from storefront.models import Product, Promotion, PromotionUsage, ServiceablePincode
from storefront.services.records import PincodeRecord, ProductRecord, PromotionRecord

logger = get_logger("catalog_lookups")


class CatalogLookupError(Exception):
    """The backing store could not answer a lookup."""


def _wrap_db_errors(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"{fn.__name__} failed: {str(e)}", exc_info=True)
            raise CatalogLookupError(f"{fn.__name__} failed") from e
    return wrapper


def _int_ids(ids: Iterable[str]) -> List[int]:
    # Product ids travel as strings; anything non-numeric cannot exist here
    return [int(i) for i in ids if str(i).isdigit()]


def pincode_record_from_row(row: ServiceablePincode) -> PincodeRecord:
    return PincodeRecord(
        pincode=row.pincode,
        is_active=bool(row.is_active),
        city=row.city,
        state=row.state,
        area_name=row.area_name,
        cod_available=row.cod_available,
        delivery_days=row.delivery_days,
        delivery_charge_paise=to_paise(row.delivery_charge) if row.delivery_charge is not None else None,
        delivery_time=row.delivery_time,
    )


def promotion_record_from_row(row: Promotion) -> PromotionRecord:
    value = Decimal(row.value)
    max_discount = to_paise(row.max_discount) if row.max_discount else None
    return PromotionRecord(
        id=str(row.id),
        code=row.code,
        name=row.name,
        type=row.type.value if hasattr(row.type, "value") else str(row.type),
        is_percentage=bool(row.is_percentage),
        start_date=row.start_date,
        end_date=row.end_date,
        percent_off=value if row.is_percentage else Decimal("0"),
        amount_off_paise=0 if row.is_percentage else to_paise(value),
        min_order_paise=to_paise(row.min_order_value or 0),
        max_discount_paise=max_discount or None,
        applicable_product_ids=frozenset(str(p.id) for p in row.applicable_products),
        applicable_category_ids=frozenset(str(c.id) for c in row.applicable_categories),
        per_user_limit=row.per_user_limit or 0,
        usage_limit=row.usage_limit,
        is_active=bool(row.is_active),
    )


class SqlCatalogLookups:
    """Collaborators for PincodeEligibilityChecker and PromotionEngine over one session."""

    def __init__(self, db: Session):
        self.db = db

    @_wrap_db_errors
    def get_pincode_by_code(self, pincode: str) -> Optional[PincodeRecord]:
        row = self.db.query(ServiceablePincode).filter(ServiceablePincode.pincode == pincode).first()
        return pincode_record_from_row(row) if row else None

    @_wrap_db_errors
    def get_promotion_by_code(self, code: str) -> Optional[PromotionRecord]:
        row = self.db.query(Promotion).filter(Promotion.code == code).first()
        return promotion_record_from_row(row) if row else None

    @_wrap_db_errors
    def get_user_promotion_usage_count(self, user_id: str, promotion_id: str) -> int:
        return self.db.query(func.count(PromotionUsage.id)).filter(
            PromotionUsage.user_id == user_id,
            PromotionUsage.promotion_id == int(promotion_id),
        ).scalar() or 0

    @_wrap_db_errors
    def get_products_by_ids(self, ids: List[str]) -> List[ProductRecord]:
        int_ids = _int_ids(ids)
        if not int_ids:
            return []
        rows = self.db.query(Product.id, Product.category_id).filter(Product.id.in_(int_ids)).all()
        return [
            ProductRecord(id=str(pid), category_id=str(cid) if cid is not None else None)
            for pid, cid in rows
        ]

    @_wrap_db_errors
    def list_active_pincodes(self) -> List[PincodeRecord]:
        rows = self.db.query(ServiceablePincode).filter(
            ServiceablePincode.is_active == True
        ).order_by(ServiceablePincode.pincode).all()
        return [pincode_record_from_row(r) for r in rows]

    @_wrap_db_errors
    def list_active_promotions(self, now: datetime) -> List[PromotionRecord]:
        rows = self.db.query(Promotion).filter(
            Promotion.is_active == True,
            Promotion.start_date <= now,
            Promotion.end_date >= now,
        ).order_by(Promotion.end_date).all()
        return [promotion_record_from_row(r) for r in rows]

    @_wrap_db_errors
    def promotion_usage_totals(self, promotion_id: int) -> Dict[str, object]:
        total_uses, distinct_users, total_discount = self.db.query(
            func.count(PromotionUsage.id),
            func.count(distinct(PromotionUsage.user_id)),
            func.coalesce(func.sum(PromotionUsage.discount_amount), 0),
        ).filter(PromotionUsage.promotion_id == promotion_id).one()
        return {
            "total_uses": total_uses or 0,
            "distinct_users": distinct_users or 0,
            "total_discount_paise": to_paise(total_discount or 0),
        }
