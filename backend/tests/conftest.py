"""
Test configuration for the storefront checkout API.
"""
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ.setdefault("DATABASE_PATH", os.path.join(_tmp_dir, "storefront-test.db"))
os.environ.setdefault("STOREFRONT_LOG_DIR", _tmp_dir)
os.environ["ADMIN_API_KEY"] = "test-admin-key"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.cache import cache_clear
from storefront.core.database import Base, get_db
from storefront.main import app
from storefront.models import Category, Product, Promotion, PromotionTypeEnum, PromotionUsage, ServiceablePincode
from storefront.services.catalog_lookups import CatalogLookupError
from storefront.services.promotion_service import PromotionEngine
from storefront.services.records import PincodeRecord, ProductRecord, PromotionRecord

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
ADMIN_HEADERS = {"X-Admin-API-Key": "test-admin-key"}


def make_promotion(code="SAVE10", **overrides) -> PromotionRecord:
    fields = dict(
        id="1",
        code=code,
        name=f"{code} promotion",
        type="percentage",
        is_percentage=True,
        percent_off=Decimal("10"),
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
    )
    fields.update(overrides)
    return PromotionRecord(**fields)


class FakeCatalog:
    """In-memory stand-in for SqlCatalogLookups that records how it was called."""

    def __init__(self):
        self.pincodes = {}
        self.promotions = {}
        self.usage = {}
        self.products = {}
        self.calls = []
        self.fail = False

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise CatalogLookupError(f"{name} failed")

    def add_promotion(self, promotion: PromotionRecord) -> PromotionRecord:
        self.promotions[promotion.code] = promotion
        return promotion

    def add_product(self, product_id: str, category_id):
        self.products[product_id] = ProductRecord(id=product_id, category_id=category_id)

    def add_pincode(self, record: PincodeRecord) -> PincodeRecord:
        self.pincodes[record.pincode] = record
        return record

    def get_pincode_by_code(self, pincode):
        self._record("get_pincode_by_code", pincode)
        return self.pincodes.get(pincode)

    def get_promotion_by_code(self, code):
        self._record("get_promotion_by_code", code)
        return self.promotions.get(code)

    def get_user_promotion_usage_count(self, user_id, promotion_id):
        self._record("get_user_promotion_usage_count", user_id, promotion_id)
        return self.usage.get((user_id, promotion_id), 0)

    def get_products_by_ids(self, ids):
        self._record("get_products_by_ids", tuple(ids))
        return [self.products[i] for i in ids if i in self.products]

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


def build_engine(catalog: FakeCatalog, now: datetime = NOW) -> PromotionEngine:
    return PromotionEngine(
        get_promotion_by_code=catalog.get_promotion_by_code,
        get_user_promotion_usage_count=catalog.get_user_promotion_usage_count,
        get_products_by_ids=catalog.get_products_by_ids,
        clock=lambda: now,
    )


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def engine(catalog):
    return build_engine(catalog)


@pytest.fixture(autouse=True)
def clear_storefront_cache():
    cache_clear()
    yield
    cache_clear()


@pytest.fixture
def db_session():
    """A fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """Pincodes, a two-category catalogue and the walkthrough promotions."""
    now = datetime.now(timezone.utc)
    window = dict(start_date=now - timedelta(days=1), end_date=now + timedelta(days=30))

    dog_food = Category(name="Dog Food", slug="dog-food")
    toys = Category(name="Toys", slug="toys")
    kibble = Product(name="Chicken Kibble", price=Decimal("1000.00"), category=dog_food)
    ball = Product(name="Squeaky Ball", price=Decimal("500.00"), category=toys)
    db_session.add_all([dog_food, toys, kibble, ball])

    db_session.add_all([
        ServiceablePincode(pincode="560034", city="Bengaluru", state="Karnataka", area_name="Koramangala",
                           delivery_days=2, cod_available=True, delivery_charge=Decimal("40.00"),
                           delivery_time="1-2 days"),
        ServiceablePincode(pincode="560095", city="Bengaluru", state="Karnataka", area_name="Koramangala",
                           delivery_days=2, cod_available=True, delivery_charge=Decimal("40.00")),
        ServiceablePincode(pincode="110001", city="New Delhi", state="Delhi", area_name="Connaught Place",
                           delivery_days=4, cod_available=False),
        ServiceablePincode(pincode="400001", city="Mumbai", state="Maharashtra", area_name="Fort",
                           is_active=False),
    ])

    save10 = Promotion(name="10% off", code="SAVE10", type=PromotionTypeEnum.PERCENTAGE,
                       value=Decimal("10"), is_percentage=True, min_order_value=Decimal("500"), **window)
    flat200 = Promotion(name="₹200 off", code="FLAT200", type=PromotionTypeEnum.FLAT,
                        value=Decimal("200"), is_percentage=False, min_order_value=Decimal("1000"), **window)
    catdog = Promotion(name="Dog food sale", code="CATDOGFOOD", type=PromotionTypeEnum.PERCENTAGE,
                       value=Decimal("20"), is_percentage=True, max_discount=Decimal("150"),
                       applicable_categories=[dog_food], **window)
    vip5 = Promotion(name="VIP", code="VIP5", type=PromotionTypeEnum.PERCENTAGE,
                     value=Decimal("5"), is_percentage=True, per_user_limit=1, usage_limit=10, **window)
    retired = Promotion(name="Old sale", code="OLD50", type=PromotionTypeEnum.PERCENTAGE,
                        value=Decimal("50"), is_percentage=True,
                        start_date=now - timedelta(days=60), end_date=now - timedelta(days=30))
    paused = Promotion(name="Paused", code="PAUSED", type=PromotionTypeEnum.FLAT,
                       value=Decimal("50"), is_percentage=False, is_active=False, **window)
    db_session.add_all([save10, flat200, catdog, vip5, retired, paused])
    db_session.flush()

    db_session.add(PromotionUsage(promotion_id=vip5.id, user_id="user-42", order_id="ORD-1",
                                  discount_amount=Decimal("25.50")))
    db_session.commit()
    return {
        "kibble": kibble,
        "ball": ball,
        "dog_food": dog_food,
        "toys": toys,
        "save10": save10,
        "vip5": vip5,
        "catdog": catdog,
    }
