"""
Pincode Service

Answers "do we deliver here?" for the checkout page and builds the
delivery-area listings shown on the storefront.
"""
from typing import Callable, Dict, List, Optional

from storefront.core.logging_config import get_logger
from storefront.core.money import from_paise
from storefront.schemas.pincode import EligibilityResult, ShippingArea
from storefront.services.records import PincodeRecord

logger = get_logger("pincode_service")

NOT_SERVICEABLE_MESSAGE = "This location is currently not serviceable"

PincodeLookup = Callable[[str], Optional[PincodeRecord]]


class PincodeEligibilityChecker:
    def __init__(self, get_pincode_by_code: PincodeLookup):
        self._get_pincode_by_code = get_pincode_by_code

    def check_pincode(self, pincode: str) -> EligibilityResult:
        """
        Look up ``pincode`` by exact match and report whether delivery is offered.

        An unknown or malformed pincode is a normal negative answer. Lookup
        failures propagate to the caller.
        """
        record = self._get_pincode_by_code(pincode)

        if record is None:
            logger.debug(f"Pincode not serviceable (unknown): {pincode}")
            return EligibilityResult(is_serviceable=False, pincode=pincode)

        if not record.is_active:
            logger.debug(f"Pincode not serviceable (inactive): {pincode}")
            return EligibilityResult(
                is_serviceable=False,
                pincode=pincode,
                message=NOT_SERVICEABLE_MESSAGE,
            )

        return serviceable_view(record, pincode)


def serviceable_view(record: PincodeRecord, pincode: Optional[str] = None) -> EligibilityResult:
    return EligibilityResult(
        is_serviceable=True,
        pincode=pincode if pincode is not None else record.pincode,
        city=record.city,
        state=record.state,
        area_name=record.area_name,
        delivery_days=record.delivery_days,
        cod_available=record.cod_available,
        delivery_charge=_rupees(record.delivery_charge_paise),
        delivery_time=record.delivery_time,
    )


def _rupees(paise: Optional[int]) -> Optional[float]:
    return float(from_paise(paise)) if paise is not None else None


def group_shipping_areas(records: List[PincodeRecord]) -> List[ShippingArea]:
    """Group active pincodes by area; the first pincode seen sets the area's details."""
    areas: Dict[Optional[str], ShippingArea] = {}
    for record in records:
        if not record.is_active:
            continue
        area = areas.get(record.area_name)
        if area is None:
            areas[record.area_name] = ShippingArea(
                area_name=record.area_name,
                city=record.city,
                state=record.state,
                delivery_charge=_rupees(record.delivery_charge_paise),
                delivery_time=record.delivery_time,
                count=1,
            )
        else:
            area.count += 1
    # Pincodes without an area sort last
    return sorted(areas.values(), key=lambda a: (a.area_name is None, a.area_name or ""))
