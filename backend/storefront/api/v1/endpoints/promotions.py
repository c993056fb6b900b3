"""
Promotions: validate a code at checkout, list what is running, and the admin
CRUD (call with header X-Admin-API-Key: <ADMIN_API_KEY from .env>).

Example validate body:
  { "code": "SAVE10", "cartTotal": 1000,
    "cartItems": [{ "productId": "12", "price": 500, "quantity": 2 }] }
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_lookups, get_optional_shopper, get_promotion_engine, require_admin_api_key
from storefront.core.cache import CACHE_PREFIX_PROMOTIONS, cache_delete_pattern, cache_get, cache_set
from storefront.core.database import get_db
from storefront.core.db_transaction import db_transaction
from storefront.core.logging_config import get_logger
from storefront.core.money import from_paise
from storefront.models import Category, Product, Promotion, PromotionTypeEnum
from storefront.schemas.promotion import (
    ActivePromotionResponse,
    AppliedPromotion,
    PromotionCreate,
    PromotionListResponse,
    PromotionResponse,
    PromotionUpdate,
    PromotionUsageMetrics,
    PromotionValidateRequest,
    PromotionValidateResponse,
    check_percentage_value,
)
from storefront.services.catalog_lookups import CatalogLookupError, SqlCatalogLookups
from storefront.services.promotion_service import PromotionEngine, RejectionReason, usage_metrics
from storefront.services.records import Shopper

logger = get_logger("promotions")

router = APIRouter()


@router.post("/validate", response_model=PromotionValidateResponse)
def validate_promotion(
    body: PromotionValidateRequest,
    engine: PromotionEngine = Depends(get_promotion_engine),
    shopper: Optional[Shopper] = Depends(get_optional_shopper),
):
    """
    Validate a promotion code against the shopper's cart and return the discount.
    Rejections come back as {"error": ..., "reason": ...} with a 4xx status.
    """
    cart = body.to_cart()
    try:
        result = engine.validate_and_price(body.code, cart, shopper)
    except CatalogLookupError:
        logger.error(f"Error validating promotion {body.code!r}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to validate promotion code"},
        )

    if not result.valid:
        status_code = (
            status.HTTP_404_NOT_FOUND
            if result.reason == RejectionReason.INVALID_CODE
            else status.HTTP_400_BAD_REQUEST
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": result.message, "reason": result.reason.value, **result.context},
        )

    promotion = result.promotion
    return PromotionValidateResponse(
        promotion=AppliedPromotion(
            id=promotion.id,
            code=promotion.code,
            name=promotion.name,
            type=promotion.type,
            discount=float(result.discount),
            applicable_items=list(result.matched_item_ids),
        ),
        final_total=float(from_paise(max(cart.subtotal_paise - result.discount_paise, 0))),
    )


@router.get("/active", response_model=List[ActivePromotionResponse])
def list_active_promotions(lookups: SqlCatalogLookups = Depends(get_lookups)):
    """Running promotions for the storefront banner. Usage limits are not exposed."""
    cache_key = f"{CACHE_PREFIX_PROMOTIONS}:active"
    cached = cache_get(cache_key)
    if cached is not None:
        return cached
    try:
        running = lookups.list_active_promotions(datetime.now(timezone.utc))
    except CatalogLookupError:
        logger.error("Error fetching active promotions", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch active promotions"},
        )
    promotions = [
        ActivePromotionResponse(
            id=p.id,
            name=p.name,
            code=p.code,
            type=p.type,
            value=float(p.percent_off) if p.is_percentage else float(from_paise(p.amount_off_paise)),
            is_percentage=p.is_percentage,
            min_order_value=float(from_paise(p.min_order_paise)),
            start_date=p.start_date,
            end_date=p.end_date,
        )
        for p in running
    ]
    cache_set(cache_key, [p.model_dump(mode="json", by_alias=True) for p in promotions])
    return promotions


def _to_utc(dt: datetime) -> datetime:
    # Naive datetimes from the admin form are taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _load_products(db: Session, ids: List[int]) -> List[Product]:
    rows = db.query(Product).filter(Product.id.in_(ids)).all() if ids else []
    missing = set(ids) - {r.id for r in rows}
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown product ids: {sorted(missing)}")
    return rows


def _load_categories(db: Session, ids: List[int]) -> List[Category]:
    rows = db.query(Category).filter(Category.id.in_(ids)).all() if ids else []
    missing = set(ids) - {r.id for r in rows}
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown category ids: {sorted(missing)}")
    return rows


def _get_promotion_or_404(db: Session, promotion_id: int) -> Promotion:
    promotion = db.query(Promotion).filter(Promotion.id == promotion_id).first()
    if not promotion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
    return promotion


@router.get("/admin", response_model=PromotionListResponse)
def admin_list_promotions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    type: Optional[PromotionTypeEnum] = Query(None),
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    query = db.query(Promotion)
    if is_active is not None:
        query = query.filter(Promotion.is_active == is_active)
    if type is not None:
        query = query.filter(Promotion.type == type)
    total = query.count()
    promotions = query.order_by(Promotion.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"promotions": promotions, "total": total}


@router.post("/admin", response_model=PromotionResponse, status_code=201)
def admin_create_promotion(
    body: PromotionCreate,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    existing = db.query(Promotion).filter(Promotion.code == body.code).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A promotion with code '{body.code}' already exists",
        )

    data = body.model_dump(exclude={"applicable_products", "applicable_categories"})
    data["start_date"] = _to_utc(data["start_date"])
    data["end_date"] = _to_utc(data["end_date"])
    promotion = Promotion(**data)
    promotion.applicable_products = _load_products(db, body.applicable_products)
    promotion.applicable_categories = _load_categories(db, body.applicable_categories)

    with db_transaction(db):
        db.add(promotion)
    db.refresh(promotion)
    cache_delete_pattern(CACHE_PREFIX_PROMOTIONS)
    logger.info(
        f"Promotion created: {promotion.code}",
        extra={"promotion_id": promotion.id, "type": promotion.type.value},
    )
    return promotion


@router.get("/admin/{promotion_id}", response_model=PromotionResponse)
def admin_get_promotion(
    promotion_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    return _get_promotion_or_404(db, promotion_id)


@router.patch("/admin/{promotion_id}", response_model=PromotionResponse)
def admin_update_promotion(
    promotion_id: int,
    body: PromotionUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    promotion = _get_promotion_or_404(db, promotion_id)
    changes = body.model_dump(exclude_unset=True)

    new_code = changes.get("code")
    if new_code and new_code != promotion.code:
        clash = db.query(Promotion).filter(Promotion.code == new_code, Promotion.id != promotion_id).first()
        if clash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Code is already in use by another promotion",
            )

    for key in ("start_date", "end_date"):
        if key in changes:
            changes[key] = _to_utc(changes[key])
    if "type" in changes and "is_percentage" not in changes:
        changes["is_percentage"] = changes["type"] == PromotionTypeEnum.PERCENTAGE

    # Check the promotion as it will look after the update, not just the fields sent
    start = changes.get("start_date", _to_utc(promotion.start_date))
    end = changes.get("end_date", _to_utc(promotion.end_date))
    if end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    try:
        check_percentage_value(
            changes.get("is_percentage", promotion.is_percentage),
            Decimal(changes.get("value", promotion.value)),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if "applicable_products" in changes:
        promotion.applicable_products = _load_products(db, changes.pop("applicable_products") or [])
    if "applicable_categories" in changes:
        promotion.applicable_categories = _load_categories(db, changes.pop("applicable_categories") or [])

    with db_transaction(db):
        for key, value in changes.items():
            setattr(promotion, key, value)
    db.refresh(promotion)
    cache_delete_pattern(CACHE_PREFIX_PROMOTIONS)
    logger.info(f"Promotion updated: {promotion.code}", extra={"promotion_id": promotion.id, "changes": list(changes)})
    return promotion


@router.delete("/admin/{promotion_id}", status_code=204)
def admin_delete_promotion(
    promotion_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    promotion = _get_promotion_or_404(db, promotion_id)
    code = promotion.code
    with db_transaction(db):
        db.delete(promotion)
    cache_delete_pattern(CACHE_PREFIX_PROMOTIONS)
    logger.info(f"Promotion deleted: {code}", extra={"promotion_id": promotion_id})
    return Response(status_code=204)


@router.get("/admin/{promotion_id}/usage", response_model=PromotionUsageMetrics)
def admin_promotion_usage(
    promotion_id: int,
    db: Session = Depends(get_db),
    lookups: SqlCatalogLookups = Depends(get_lookups),
    _: None = Depends(require_admin_api_key),
):
    promotion = _get_promotion_or_404(db, promotion_id)
    return usage_metrics(lookups.promotion_usage_totals(promotion.id), promotion.usage_limit)
