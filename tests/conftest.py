"""Shared fixtures for the billing test suite."""

from datetime import date
from decimal import Decimal

import pytest

from invoices import InvoiceNumberSequence, Party
from tax_calc import LineItem


@pytest.fixture
def seller() -> Party:
    return Party(name="Friends Group Company Pvt. Ltd.", state="Maharashtra", gstin="27ABCDE1234F1Z5")


@pytest.fixture
def local_buyer() -> Party:
    return Party(name="Sharma Electronics", state="Maharashtra", gstin="27AAACM1234K1Z5")


@pytest.fixture
def delhi_buyer() -> Party:
    return Party(name="Rajesh Traders", state="Delhi", gstin="07AAACR5055K1Z5")


@pytest.fixture
def single_item() -> list:
    """qty 2 x 100 @ 18%."""
    return [LineItem(quantity=2, unit_price=100, tax_rate_percent=18, description="Phone cover")]


@pytest.fixture
def two_items() -> list:
    """(1 x 1000, disc 100, 12%) and (3 x 50, 5%)."""
    return [
        LineItem(quantity=1, unit_price=1000, line_discount=100, tax_rate_percent=12, description="Shoes"),
        LineItem(quantity=3, unit_price=50, tax_rate_percent=5, description="Rice 1kg"),
    ]


@pytest.fixture
def numbers() -> InvoiceNumberSequence:
    return InvoiceNumberSequence(year=2025)


@pytest.fixture
def invoice_date() -> date:
    return date(2025, 1, 15)
