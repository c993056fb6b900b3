from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from decimal import Decimal


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, as the storefront client expects."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class EligibilityResult(CamelModel):
    is_serviceable: bool
    pincode: str
    message: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    area_name: Optional[str] = None
    delivery_days: Optional[int] = None
    cod_available: Optional[bool] = None
    delivery_charge: Optional[float] = None  # INR
    delivery_time: Optional[str] = None


class ShippingArea(CamelModel):
    area_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    delivery_charge: Optional[float] = None
    delivery_time: Optional[str] = None
    count: int


class PincodeCreate(CamelModel):
    pincode: str = Field(min_length=1, max_length=16)
    city: Optional[str] = None
    state: Optional[str] = None
    area_name: Optional[str] = None
    is_active: bool = True
    cod_available: bool = True
    delivery_days: Optional[int] = Field(default=None, ge=0)
    delivery_charge: Optional[Decimal] = Field(default=None, ge=0)
    delivery_time: Optional[str] = None

    @field_validator("pincode")
    @classmethod
    def pincode_trim(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("pincode is required")
        return v


class PincodeUpdate(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    area_name: Optional[str] = None
    is_active: Optional[bool] = None
    cod_available: Optional[bool] = None
    delivery_days: Optional[int] = Field(default=None, ge=0)
    delivery_charge: Optional[Decimal] = Field(default=None, ge=0)
    delivery_time: Optional[str] = None

    @field_validator("is_active", "cod_available", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class PincodeResponse(CamelModel):
    id: int
    pincode: str
    city: Optional[str]
    state: Optional[str]
    area_name: Optional[str]
    is_active: bool
    cod_available: bool
    delivery_days: Optional[int]
    delivery_charge: Optional[float]
    delivery_time: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PincodeListResponse(CamelModel):
    pincodes: list[PincodeResponse]
    total: int
