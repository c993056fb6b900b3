from decimal import Decimal

import pytest

from storefront.core.money import from_paise, percent_of, to_paise


@pytest.mark.parametrize("rupees, paise", [
    (0, 0),
    (1, 100),
    ("199.99", 19999),
    (Decimal("10.005"), 1001),
    (0.1, 10),
    (1000.0, 100000),
])
def test_to_paise(rupees, paise):
    assert to_paise(rupees) == paise


def test_from_paise_keeps_two_places():
    assert from_paise(12345) == Decimal("123.45")
    assert str(from_paise(100000)) == "1000.00"


def test_percent_of_rounds_half_up():
    assert percent_of(100000, Decimal("10")) == 10000
    assert percent_of(333, Decimal("50")) == 167
    assert percent_of(0, Decimal("99.99")) == 0
