from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.database import get_db
from storefront.core.logging_config import get_logger
from storefront.core.security import decode_access_token
from storefront.services.catalog_lookups import SqlCatalogLookups
from storefront.services.pincode_service import PincodeEligibilityChecker
from storefront.services.promotion_service import PromotionEngine
from storefront.services.records import Shopper

logger = get_logger("deps")

bearer_scheme = HTTPBearer(auto_error=False)


def get_lookups(db: Session = Depends(get_db)) -> SqlCatalogLookups:
    return SqlCatalogLookups(db)


def get_pincode_checker(lookups: SqlCatalogLookups = Depends(get_lookups)) -> PincodeEligibilityChecker:
    return PincodeEligibilityChecker(lookups.get_pincode_by_code)


def get_promotion_engine(lookups: SqlCatalogLookups = Depends(get_lookups)) -> PromotionEngine:
    return PromotionEngine(
        get_promotion_by_code=lookups.get_promotion_by_code,
        get_user_promotion_usage_count=lookups.get_user_promotion_usage_count,
        get_products_by_ids=lookups.get_products_by_ids,
    )


def get_optional_shopper(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Shopper]:
    """The signed-in shopper, or None. Anonymous checkout is allowed, so bad tokens are not an error."""
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        logger.warning("get_optional_shopper: token rejected, continuing as guest")
        return None
    return Shopper(id=str(payload["sub"]))


def require_admin_api_key(x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key")) -> None:
    if not settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API key is not configured. Set ADMIN_API_KEY in environment.",
        )
    if x_admin_api_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Admin-API-Key header.",
        )
