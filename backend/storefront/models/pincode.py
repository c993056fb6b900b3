from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric
from sqlalchemy.sql import func
from storefront.core.database import Base


class ServiceablePincode(Base):
    __tablename__ = "serviceable_pincodes"

    id = Column(Integer, primary_key=True, index=True)
    pincode = Column(String(16), unique=True, nullable=False, index=True)  # exact match, e.g. 560034
    city = Column(String(128), nullable=True)
    state = Column(String(128), nullable=True)
    area_name = Column(String(128), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    cod_available = Column(Boolean, default=True, nullable=False)
    delivery_days = Column(Integer, default=3, nullable=True)
    delivery_charge = Column(Numeric(10, 2), nullable=True)  # INR
    delivery_time = Column(String(64), nullable=True)  # free text, e.g. "2-3 days"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
