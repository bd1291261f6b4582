"""POS cart. Checkout is a fully paid sale invoice built through tax_calc."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Optional

from loguru import logger

from config import settings
from invoices import Invoice, InvoiceNumberSequence, InvoiceType, Party, PaymentMode, build_invoice
from tax_calc import (
    ZERO,
    BillingError,
    InvalidInvoiceContext,
    InvalidLineItem,
    InvoiceTotals,
    LineItem,
    Number,
    compute_invoice_totals,
    to_decimal,
)

WALK_IN = Party(name="Walk-in Customer")


class OutOfStock(BillingError):
    def __init__(self, product_name: str, available: Decimal):
        self.product_name = product_name
        self.available = available
        super().__init__(f"Not enough stock for {product_name} (available: {available})")


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    unit_price: Decimal
    gst_rate: Decimal
    stock: Decimal
    unit: str = "Pcs"
    hsn_code: str = ""

    def __post_init__(self):
        for name in ("unit_price", "gst_rate", "stock"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))


class Cart:
    def __init__(self):
        self._lines: Dict[str, LineItem] = {}
        self._stock: Dict[str, Decimal] = {}
        self.overall_discount: Decimal = ZERO

    def __len__(self):
        return len(self._lines)

    @property
    def items(self) -> List[LineItem]:
        return list(self._lines.values())

    def add(self, product: Product, quantity: Number = 1) -> LineItem:
        qty = to_decimal(quantity, "quantity")
        if qty <= ZERO:
            raise InvalidLineItem(f"Quantity must be greater than 0, got {qty}", field="quantity")
        existing = self._lines.get(product.product_id)
        new_qty = qty + (existing.quantity if existing else ZERO)
        if new_qty > product.stock:
            raise OutOfStock(product.name, product.stock)

        if existing:
            line = replace(existing, quantity=new_qty)
        else:
            line = LineItem(
                quantity=new_qty,
                unit_price=product.unit_price,
                tax_rate_percent=product.gst_rate,
                description=product.name,
                hsn_code=product.hsn_code,
                unit=product.unit,
                product_id=product.product_id,
            )
        self._lines[product.product_id] = line
        self._stock[product.product_id] = product.stock
        return line

    def update_quantity(self, product_id: str, delta: Number) -> Optional[LineItem]:
        """Change a line's quantity; the line is dropped once it reaches zero."""
        line = self._lines[product_id]
        new_qty = line.quantity + to_decimal(delta, "delta")
        if new_qty <= ZERO:
            self.remove(product_id)
            return None
        if new_qty > self._stock[product_id]:
            raise OutOfStock(line.description, self._stock[product_id])
        self._lines[product_id] = replace(line, quantity=new_qty)
        return self._lines[product_id]

    def set_discount(self, product_id: str, amount: Number) -> LineItem:
        line = replace(self._lines[product_id], line_discount=amount)
        self._lines[product_id] = line
        return line

    def set_overall_discount(self, amount: Number) -> None:
        value = to_decimal(amount, "overall_discount")
        if value < ZERO:
            raise InvalidInvoiceContext("overall_discount cannot be negative", "overall_discount")
        self.overall_discount = value

    def remove(self, product_id: str) -> None:
        self._lines.pop(product_id, None)
        self._stock.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self._stock.clear()
        self.overall_discount = ZERO

    def totals(self, seller_state: str = "", buyer_state: str = "") -> InvoiceTotals:
        """Running totals shown beside the cart; nothing is paid yet."""
        return compute_invoice_totals(
            self.items,
            self.overall_discount,
            seller_state,
            buyer_state,
            ZERO,
            discount_policy=settings.DISCOUNT_TAX_POLICY,
        )

    def checkout(
        self,
        seller: Party,
        numbers: InvoiceNumberSequence,
        buyer: Party = WALK_IN,
        payment_mode: PaymentMode = PaymentMode.CASH,
    ) -> Invoice:
        if not self._lines:
            raise InvalidInvoiceContext("Cart is empty", "items")
        # a POS sale is settled in full at the counter
        draft = self.totals(seller.state, buyer.state)
        invoice = build_invoice(
            self.items,
            seller,
            buyer,
            numbers.next(InvoiceType.SALE),
            overall_discount=self.overall_discount,
            amount_paid=draft.grand_total,
            payment_mode=payment_mode,
        )
        logger.info("POS checkout {}: {} lines, {}", invoice.invoice_number, len(self), PaymentMode(payment_mode).value)
        self.clear()
        return invoice
