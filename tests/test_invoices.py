"""Tests for invoice snapshots, numbering and payments."""

from decimal import Decimal

import pytest

from invoices import (
    InvoiceNumberSequence,
    InvoiceType,
    Party,
    PaymentMode,
    build_invoice,
    record_payment,
    validate_gstin,
)
from tax_calc import (
    DiscountTaxPolicy,
    InvalidInvoiceContext,
    LineItem,
    PaymentStatus,
    TooManyLineItems,
)


class TestGstin:

    @pytest.mark.parametrize("gstin", ["27ABCDE1234F1Z5", "07aaacr5055k1z5", " 29AAACB5678K1Z5 "])
    def test_valid(self, gstin):
        assert validate_gstin(gstin) == gstin.strip().upper()

    @pytest.mark.parametrize("gstin", ["27ABCDE1234F1X5", "ABCDE1234F1Z5", "27ABCDE1234F0Z5", "12345"])
    def test_invalid(self, gstin):
        with pytest.raises(InvalidInvoiceContext):
            validate_gstin(gstin)

    def test_empty_means_not_provided(self):
        assert validate_gstin("") == ""
        assert validate_gstin(None) == ""
        assert Party(name="Walk-in").gstin == ""

    def test_party_rejects_bad_gstin(self):
        with pytest.raises(InvalidInvoiceContext):
            Party(name="Bad", state="Goa", gstin="NOT-A-GSTIN")


class TestNumbering:

    def test_sequence_per_prefix(self, numbers):
        assert numbers.next(InvoiceType.SALE) == "INV-2025-001"
        assert numbers.next(InvoiceType.SALE) == "INV-2025-002"
        assert numbers.next(InvoiceType.PURCHASE) == "PUR-2025-001"
        assert numbers.next("sale") == "INV-2025-003"

    def test_custom_prefixes(self):
        seq = InvoiceNumberSequence(year=2026, prefixes={InvoiceType.SALE: "S", InvoiceType.PURCHASE: "P"})
        assert seq.next() == "S-2026-001"


class TestBuildInvoice:

    def test_snapshot_matches_engine(self, two_items, seller, local_buyer, invoice_date):
        inv = build_invoice(
            two_items, seller, local_buyer, "INV-2025-001",
            invoice_date=invoice_date, overall_discount=20, amount_paid=500,
            payment_mode=PaymentMode.UPI,
        )
        assert inv.totals.grand_total == Decimal("1145.5")
        assert inv.status == PaymentStatus.PARTIAL
        assert inv.totals.cgst == inv.totals.sgst == Decimal("57.75")

    def test_to_dict(self, single_item, seller, delhi_buyer, invoice_date):
        data = build_invoice(
            single_item, seller, delhi_buyer, "INV-2025-007", invoice_date=invoice_date, amount_paid=236,
        ).to_dict()
        assert data["invoice_number"] == "INV-2025-007"
        assert data["date"] == "2025-01-15"
        assert data["type"] == "sale"
        assert data["buyer"]["state"] == "Delhi"
        assert data["totals"]["igst"] == Decimal("36.00")
        assert data["totals"]["status"] == "paid"
        row = data["items"][0]
        assert row["sr"] == 1
        assert row["taxable"] == Decimal("200.00")
        assert row["igst"] == Decimal("36.00")
        assert row["line_total"] == Decimal("236.00")

    def test_custom_columns_are_carried_not_computed(self, seller, local_buyer):
        items = [LineItem(quantity=1, unit_price=500, tax_rate_percent=12, custom_fields={"Batch": "B1"})]
        inv = build_invoice(items, seller, local_buyer, "INV-1", custom_columns=["Batch", "Expiry"])
        row = inv.to_dict()["items"][0]
        assert row["Batch"] == "B1"
        assert row["Expiry"] == ""
        assert inv.totals.grand_total == Decimal("560")

    @pytest.mark.parametrize("name", ["qty", "Rate", " line_total "])
    def test_custom_column_cannot_shadow_item_column(self, seller, local_buyer, name):
        items = [LineItem(quantity=1, unit_price=500, tax_rate_percent=12, custom_fields={name: "x"})]
        with pytest.raises(InvalidInvoiceContext) as exc_info:
            build_invoice(items, seller, local_buyer, "INV-1", custom_columns=["Batch", name])
        assert exc_info.value.field == "custom_columns"

    def test_item_cap(self, seller, local_buyer):
        items = [LineItem(quantity=1, unit_price=10) for _ in range(9)]
        with pytest.raises(TooManyLineItems):
            build_invoice(items, seller, local_buyer, "INV-1", max_items=8)

    def test_explicit_policy(self, two_items, seller, local_buyer):
        inv = build_invoice(
            two_items, seller, local_buyer, "INV-1",
            overall_discount=20, discount_policy=DiscountTaxPolicy.PRORATED,
        )
        assert inv.discount_policy == DiscountTaxPolicy.PRORATED
        assert inv.totals.total_tax < Decimal("115.5")


class TestRecordPayment:

    def test_status_moves_forward(self, two_items, seller, local_buyer):
        inv = build_invoice(two_items, seller, local_buyer, "INV-1", overall_discount=20)
        assert inv.status == PaymentStatus.UNPAID

        inv = record_payment(inv, 500)
        assert inv.status == PaymentStatus.PARTIAL
        assert inv.totals.balance_due == Decimal("645.5")

        inv = record_payment(inv, "645.5")
        assert inv.status == PaymentStatus.PAID
        assert inv.totals.balance_due == Decimal("0")
        assert inv.totals.overall_discount == Decimal("20")

    def test_original_snapshot_untouched(self, single_item, seller, local_buyer):
        inv = build_invoice(single_item, seller, local_buyer, "INV-1")
        record_payment(inv, 100)
        assert inv.totals.amount_paid == Decimal("0")

    @pytest.mark.parametrize("amount", [-1, "abc"])
    def test_rejects_bad_amount(self, single_item, seller, local_buyer, amount):
        inv = build_invoice(single_item, seller, local_buyer, "INV-1")
        with pytest.raises(InvalidInvoiceContext):
            record_payment(inv, amount)

    def test_paying_the_shown_balance_settles(self, seller, local_buyer):
        items = [LineItem(quantity=1, unit_price="10.01", tax_rate_percent=5)]
        inv = build_invoice(items, seller, local_buyer, "INV-1")
        shown = inv.to_dict()["totals"]
        assert shown["grand_total"] == Decimal("10.51")

        inv = record_payment(inv, shown["balance_due"])
        totals = inv.to_dict()["totals"]
        assert totals["status"] == "paid"
        assert totals["balance_due"] == Decimal("0.00")
