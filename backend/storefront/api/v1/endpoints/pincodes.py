"""
Pincodes: serviceability check and delivery-area listings for the storefront,
plus the admin CRUD behind X-Admin-API-Key.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_lookups, get_pincode_checker, require_admin_api_key
from storefront.core.config import settings
from storefront.core.cache import CACHE_PREFIX_PINCODES, cache_delete_pattern, cache_get, cache_set
from storefront.core.database import get_db
from storefront.core.db_transaction import db_transaction
from storefront.core.logging_config import get_logger
from storefront.models.pincode import ServiceablePincode
from storefront.schemas.pincode import (
    EligibilityResult,
    PincodeCreate,
    PincodeListResponse,
    PincodeResponse,
    PincodeUpdate,
    ShippingArea,
)
from storefront.services.catalog_lookups import CatalogLookupError, SqlCatalogLookups
from storefront.services.pincode_service import PincodeEligibilityChecker, group_shipping_areas, serviceable_view

logger = get_logger("pincodes")

router = APIRouter()


@router.get("/check", response_model=EligibilityResult, response_model_exclude_none=True)
def check_pincode(
    pincode: Optional[str] = Query(None),
    checker: PincodeEligibilityChecker = Depends(get_pincode_checker),
):
    """Tell the checkout page whether we deliver to this pincode."""
    if not pincode or not pincode.strip():
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Pincode is required"})
    try:
        return checker.check_pincode(pincode.strip())
    except CatalogLookupError:
        logger.error(f"Error checking pincode {pincode}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to check pincode"},
        )


@router.get("", response_model=List[EligibilityResult], response_model_exclude_none=True)
def list_active_pincodes(lookups: SqlCatalogLookups = Depends(get_lookups)):
    """All active pincodes, for the storefront's delivery widget."""
    cache_key = f"{CACHE_PREFIX_PINCODES}:active"
    cached = cache_get(cache_key)
    if cached is not None:
        return cached
    try:
        records = lookups.list_active_pincodes()
    except CatalogLookupError:
        logger.error("Error fetching pincodes", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch pincodes"},
        )
    result = [serviceable_view(r) for r in records]
    cache_set(cache_key, [r.model_dump(by_alias=True, exclude_none=True) for r in result])
    return result


@router.get("/shipping-areas", response_model=List[ShippingArea])
def list_shipping_areas(lookups: SqlCatalogLookups = Depends(get_lookups)):
    cache_key = f"{CACHE_PREFIX_PINCODES}:areas"
    cached = cache_get(cache_key)
    if cached is not None:
        return cached
    try:
        records = lookups.list_active_pincodes()
    except CatalogLookupError:
        logger.error("Error fetching shipping areas", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch shipping areas"},
        )
    areas = group_shipping_areas(records)
    cache_set(cache_key, [a.model_dump(by_alias=True) for a in areas])
    return areas


@router.get("/admin", response_model=PincodeListResponse)
def admin_list_pincodes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    query = db.query(ServiceablePincode)
    total = query.count()
    pincodes = query.order_by(ServiceablePincode.pincode).offset((page - 1) * limit).limit(limit).all()
    return {"pincodes": pincodes, "total": total}


@router.post("/admin", response_model=PincodeResponse, status_code=201)
def admin_create_pincode(
    body: PincodeCreate,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    existing = db.query(ServiceablePincode).filter(ServiceablePincode.pincode == body.pincode).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Pincode already exists")

    data = body.model_dump()
    if data["delivery_days"] is None:
        data["delivery_days"] = settings.DEFAULT_DELIVERY_DAYS
    row = ServiceablePincode(**data)
    with db_transaction(db):
        db.add(row)
    db.refresh(row)
    cache_delete_pattern(CACHE_PREFIX_PINCODES)
    logger.info(f"Pincode created: {row.pincode}", extra={"pincode_id": row.id})
    return row


def _get_pincode_or_404(db: Session, pincode_id: int) -> ServiceablePincode:
    row = db.query(ServiceablePincode).filter(ServiceablePincode.id == pincode_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pincode not found")
    return row


@router.get("/admin/{pincode_id}", response_model=PincodeResponse)
def admin_get_pincode(
    pincode_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    return _get_pincode_or_404(db, pincode_id)


@router.patch("/admin/{pincode_id}", response_model=PincodeResponse)
def admin_update_pincode(
    pincode_id: int,
    body: PincodeUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    row = _get_pincode_or_404(db, pincode_id)
    changes = body.model_dump(exclude_unset=True)
    with db_transaction(db):
        for key, value in changes.items():
            setattr(row, key, value)
    db.refresh(row)
    cache_delete_pattern(CACHE_PREFIX_PINCODES)
    logger.info(f"Pincode updated: {row.pincode}", extra={"pincode_id": row.id, "changes": list(changes)})
    return row


@router.delete("/admin/{pincode_id}", status_code=204)
def admin_delete_pincode(
    pincode_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_api_key),
):
    row = _get_pincode_or_404(db, pincode_id)
    pincode = row.pincode
    with db_transaction(db):
        db.delete(row)
    cache_delete_pattern(CACHE_PREFIX_PINCODES)
    logger.info(f"Pincode deleted: {pincode}", extra={"pincode_id": pincode_id})
    return Response(status_code=204)
