from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, ForeignKey, Table, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from storefront.core.database import Base


class PromotionTypeEnum(str, enum.Enum):
    FLAT = "flat"
    PERCENTAGE = "percentage"
    BUY_X_GET_Y = "buy_x_get_y"  # stored for the admin, never priced here


promotion_products = Table(
    "promotion_products",
    Base.metadata,
    Column("promotion_id", Integer, ForeignKey("promotions.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)

promotion_categories = Table(
    "promotion_categories",
    Base.metadata,
    Column("promotion_id", Integer, ForeignKey("promotions.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(64), unique=True, nullable=False, index=True)  # case-sensitive, e.g. SAVE10
    type = Column(
        SQLEnum(PromotionTypeEnum, values_callable=lambda x: [e.value for e in x], native_enum=False),
        nullable=False,
    )
    value = Column(Numeric(10, 2), nullable=False)  # percent (0-100) or INR, see is_percentage
    is_percentage = Column(Boolean, default=True, nullable=False)
    min_order_value = Column(Numeric(10, 2), default=0, nullable=False)  # INR
    max_discount = Column(Numeric(10, 2), nullable=True)  # INR, None or 0 = uncapped
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=True)  # all shoppers together, None = unlimited
    per_user_limit = Column(Integer, default=1, nullable=True)  # 0 or None = unlimited
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    applicable_products = relationship("Product", secondary=promotion_products, lazy="selectin")
    applicable_categories = relationship("Category", secondary=promotion_categories, lazy="selectin")
    usages = relationship("PromotionUsage", back_populates="promotion", cascade="all, delete-orphan")


class PromotionUsage(Base):
    """One redemption of a promotion. Rows are written by order creation."""
    __tablename__ = "promotion_usages"

    id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    order_id = Column(String(64), nullable=True)
    discount_amount = Column(Numeric(10, 2), default=0, nullable=False)  # INR
    used_at = Column(DateTime(timezone=True), server_default=func.now())

    promotion = relationship("Promotion", back_populates="usages")
