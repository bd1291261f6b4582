"""Tests for the POS cart."""

from decimal import Decimal

import pytest

from invoices import Party, PaymentMode
from pos import Cart, OutOfStock, Product
from tax_calc import BillingError, InvalidInvoiceContext, InvalidLineItem, PaymentStatus


@pytest.fixture
def phone() -> Product:
    return Product("P001", "Samsung Galaxy M14", "13999", 18, 3, hsn_code="8517")


@pytest.fixture
def rice() -> Product:
    return Product("P002", "Basmati Rice 5kg", "450", 5, 100, unit="Pack")


class TestCart:

    def test_add_merges_lines(self, phone):
        cart = Cart()
        cart.add(phone)
        line = cart.add(phone)
        assert len(cart) == 1
        assert line.quantity == Decimal("2")
        assert line.tax_rate_percent == Decimal("18")
        assert line.product_id == "P001"

    def test_stock_cap(self, phone):
        cart = Cart()
        cart.add(phone, 3)
        with pytest.raises(OutOfStock) as exc_info:
            cart.add(phone)
        assert exc_info.value.available == Decimal("3")
        assert issubclass(OutOfStock, BillingError)

    @pytest.mark.parametrize("quantity", [0, -1, "-0.5"])
    def test_add_rejects_non_positive_quantity(self, phone, quantity):
        cart = Cart()
        cart.add(phone, 2)
        with pytest.raises(InvalidLineItem) as exc_info:
            cart.add(phone, quantity)
        assert exc_info.value.field == "quantity"
        assert cart.items[0].quantity == Decimal("2")

    def test_add_zero_to_empty_cart_stores_nothing(self, rice):
        cart = Cart()
        with pytest.raises(InvalidLineItem):
            cart.add(rice, 0)
        assert len(cart) == 0

    def test_update_quantity(self, phone, rice):
        cart = Cart()
        cart.add(phone)
        cart.add(rice, 2)
        assert cart.update_quantity("P002", 3).quantity == Decimal("5")
        with pytest.raises(OutOfStock):
            cart.update_quantity("P001", 5)
        assert cart.update_quantity("P001", -1) is None
        assert [line.product_id for line in cart.items] == ["P002"]

    def test_running_totals(self, rice):
        cart = Cart()
        cart.add(rice, 2)
        cart.set_discount("P002", 50)
        cart.set_overall_discount(10)
        t = cart.totals("Maharashtra", "")
        assert t.subtotal == Decimal("900")
        assert t.total_discount == Decimal("60")
        assert t.taxable_amount == Decimal("840")
        # GST on the discounted line value, before the cart discount
        assert t.total_tax == Decimal("42.5")
        assert t.cgst == t.sgst
        assert t.status == PaymentStatus.UNPAID

    def test_line_discount_above_gross_fails_on_totals(self, rice):
        cart = Cart()
        cart.add(rice)
        cart.set_discount("P002", 500)
        with pytest.raises(InvalidLineItem):
            cart.totals()

    def test_negative_cart_discount(self):
        with pytest.raises(InvalidInvoiceContext):
            Cart().set_overall_discount(-1)


class TestCheckout:

    def test_checkout_is_paid_in_full(self, phone, rice, seller, numbers):
        cart = Cart()
        cart.add(phone)
        cart.add(rice, 2)
        invoice = cart.checkout(seller, numbers, payment_mode=PaymentMode.UPI)
        assert invoice.invoice_number == "INV-2025-001"
        assert invoice.status == PaymentStatus.PAID
        assert invoice.totals.balance_due == Decimal("0")
        assert invoice.totals.amount_paid == invoice.totals.grand_total
        assert invoice.totals.grand_total == Decimal("17463.82")
        assert not invoice.totals.is_inter_state
        assert invoice.payment_mode == PaymentMode.UPI
        assert len(cart) == 0

    def test_inter_state_customer(self, phone, seller, numbers):
        cart = Cart()
        cart.add(phone)
        invoice = cart.checkout(seller, numbers, Party(name="Walk-in Customer", state="Delhi"))
        assert invoice.totals.igst == Decimal("2519.82")
        assert invoice.totals.cgst == Decimal("0")

    def test_empty_cart(self, seller, numbers):
        with pytest.raises(InvalidInvoiceContext):
            Cart().checkout(seller, numbers)
