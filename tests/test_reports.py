"""Tests for report aggregation."""

from decimal import Decimal

import pytest

from invoices import InvoiceType, Party, PaymentMode, build_invoice
from reports import gst_summary_by_rate, invoices_to_frame, party_summary, payment_mode_summary, receivables
from tax_calc import LineItem


@pytest.fixture
def invoices(seller, local_buyer, delhi_buyer, two_items, single_item):
    supplier = Party(name="Metro Wholesale", state="Maharashtra")
    return [
        build_invoice(two_items, seller, local_buyer, "INV-2025-001", overall_discount=20,
                      amount_paid=500, payment_mode=PaymentMode.UPI),
        build_invoice(single_item, seller, delhi_buyer, "INV-2025-002", amount_paid=236),
        build_invoice(single_item, seller, local_buyer, "INV-2025-003", payment_mode=PaymentMode.UPI),
        build_invoice(
            [LineItem(quantity=10, unit_price=100, tax_rate_percent=18)],
            supplier, seller, "PUR-2025-001", invoice_type=InvoiceType.PURCHASE,
        ),
    ]


class TestLineFrame:

    def test_one_row_per_item(self, invoices):
        df = invoices_to_frame(invoices)
        assert len(df) == 5
        assert set(df["type"]) == {"sale", "purchase"}

    def test_filter_by_type(self, invoices):
        df = invoices_to_frame(invoices, InvoiceType.PURCHASE)
        assert list(df["invoice_number"]) == ["PUR-2025-001"]

    def test_empty(self):
        df = invoices_to_frame([])
        assert df.empty
        assert "taxable" in df.columns


class TestGstSummary:

    def test_buckets_honour_state_split(self, invoices):
        summary = gst_summary_by_rate(invoices)
        assert list(summary.index) == [5.0, 12.0, 18.0]

        r18 = summary.loc[18.0]
        assert r18["taxable"] == pytest.approx(400.0)
        assert r18["igst"] == pytest.approx(36.0)
        assert r18["cgst"] == pytest.approx(18.0)
        assert r18["sgst"] == pytest.approx(18.0)
        assert r18["total_tax"] == pytest.approx(72.0)

        assert summary.loc[12.0, "taxable"] == pytest.approx(900.0)
        assert summary.loc[12.0, "total_tax"] == pytest.approx(108.0)
        assert summary.loc[5.0, "total_tax"] == pytest.approx(7.5)

    def test_purchases_reported_separately(self, invoices):
        summary = gst_summary_by_rate(invoices, InvoiceType.PURCHASE)
        assert summary.loc[18.0, "total_tax"] == pytest.approx(180.0)


class TestSummaries:

    def test_payment_modes(self, invoices):
        summary = payment_mode_summary(invoices)
        assert summary.loc["upi", "count"] == 2
        assert summary.loc["upi", "total"] == pytest.approx(1381.5)
        assert summary.loc["cash", "total"] == pytest.approx(236.0)

    def test_party_summary(self, invoices):
        summary = party_summary(invoices)
        sharma = summary.loc["Sharma Electronics"]
        assert sharma["invoices"] == 2
        assert sharma["grand_total"] == pytest.approx(1381.5)
        assert sharma["balance_due"] == pytest.approx(881.5)
        assert summary.index[0] == "Sharma Electronics"

    def test_receivables_only_count_sales(self, invoices):
        assert receivables(invoices) == Decimal("881.5")
