"""
Initialize database, run migrations and seed sample checkout data.
Run from backend dir: python -m scripts.init_db [--seed]
"""
import argparse
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from alembic.config import Config
from alembic import command

from storefront.core.config import settings
from storefront.core.db_transaction import db_transaction
from storefront.models import Category, Product, Promotion, PromotionTypeEnum, ServiceablePincode


def init_db():
    """Initialize database and run all migrations."""
    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic.ini"))

    print("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    print(f"✓ Database initialized and migrations applied at {settings.DATABASE_PATH}")


def seed_sample_data():
    """Sample pincodes, a small catalogue and the promotions used in the checkout walkthrough."""
    now = datetime.now(timezone.utc)
    with db_transaction() as db:
        if db.query(Promotion).count():
            print("Sample data already present, skipping.")
            return

        dog_food = Category(name="Dog Food", slug="dog-food")
        toys = Category(name="Toys", slug="toys")
        kibble = Product(name="Chicken Kibble 3kg", price=Decimal("1000.00"), category=dog_food)
        ball = Product(name="Squeaky Ball", price=Decimal("500.00"), category=toys)
        db.add_all([dog_food, toys, kibble, ball])

        db.add_all([
            ServiceablePincode(pincode="560034", city="Bengaluru", state="Karnataka", area_name="Koramangala",
                               delivery_days=2, cod_available=True, delivery_charge=Decimal("40.00"),
                               delivery_time="1-2 days"),
            ServiceablePincode(pincode="560038", city="Bengaluru", state="Karnataka", area_name="Indiranagar",
                               delivery_days=2, cod_available=True, delivery_charge=Decimal("40.00"),
                               delivery_time="1-2 days"),
            ServiceablePincode(pincode="400001", city="Mumbai", state="Maharashtra", area_name="Fort",
                               delivery_days=4, cod_available=False, is_active=False),
        ])

        window = dict(start_date=now - timedelta(days=1), end_date=now + timedelta(days=30))
        db.add_all([
            Promotion(name="10% off everything", code="SAVE10", type=PromotionTypeEnum.PERCENTAGE,
                      value=Decimal("10"), is_percentage=True, min_order_value=Decimal("500"), **window),
            Promotion(name="₹200 off", code="FLAT200", type=PromotionTypeEnum.FLAT,
                      value=Decimal("200"), is_percentage=False, min_order_value=Decimal("1000"), **window),
            Promotion(name="20% off dog food", code="CATDOGFOOD", type=PromotionTypeEnum.PERCENTAGE,
                      value=Decimal("20"), is_percentage=True, max_discount=Decimal("150"),
                      applicable_categories=[dog_food], **window),
            Promotion(name="VIP 5% off", code="VIP5", type=PromotionTypeEnum.PERCENTAGE,
                      value=Decimal("5"), is_percentage=True, per_user_limit=1, **window),
        ])
    print("✓ Sample data seeded")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the storefront database")
    parser.add_argument("--seed", action="store_true", help="Insert sample pincodes, products and promotions")
    args = parser.parse_args()

    init_db()
    if args.seed:
        seed_sample_data()
