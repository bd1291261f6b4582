"""
Invoice records: numbering, party details and the totals snapshot taken at save time.

An Invoice never stores totals it did not get from tax_calc; recording a
payment builds a new snapshot with the status re-derived.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional, Sequence

from loguru import logger

from config import settings
from tax_calc import (
    DiscountTaxPolicy,
    InvalidInvoiceContext,
    InvoiceTotals,
    LineItem,
    Number,
    compute_invoice_totals,
    money,
    to_decimal,
)

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")
# keys of an Invoice.to_dict() item row; custom columns may not reuse them
ITEM_COLUMNS = (
    "sr", "description", "hsn", "qty", "unit", "unit_price", "discount", "rate",
    "taxable", "cgst", "sgst", "igst", "line_total",
)


class InvoiceType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"


class PaymentMode(str, Enum):
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CREDIT = "credit"
    CHEQUE = "cheque"


def validate_gstin(value: Optional[str], field_name: str = "gstin") -> str:
    """Return the GSTIN upper-cased; empty means not provided."""
    gstin = (value or "").strip().upper()
    if gstin and not GSTIN_PATTERN.match(gstin):
        raise InvalidInvoiceContext(f"Invalid GSTIN format: {value}", field_name)
    return gstin


@dataclass(frozen=True)
class Party:
    name: str
    state: str = ""
    gstin: str = ""
    address: str = ""

    def __post_init__(self):
        object.__setattr__(self, "gstin", validate_gstin(self.gstin))


class InvoiceNumberSequence:
    """INV-2025-001 style numbers, one counter per prefix."""

    def __init__(self, year: Optional[int] = None, prefixes: Optional[Dict[InvoiceType, str]] = None):
        self.year = year or date.today().year
        self.prefixes = prefixes or {
            InvoiceType.SALE: settings.INVOICE_PREFIX_SALE,
            InvoiceType.PURCHASE: settings.INVOICE_PREFIX_PURCHASE,
        }
        self._counters: Dict[str, int] = {}

    def next(self, invoice_type: InvoiceType = InvoiceType.SALE) -> str:
        prefix = self.prefixes[InvoiceType(invoice_type)]
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}-{self.year}-{self._counters[prefix]:03d}"


@dataclass(frozen=True)
class Invoice:
    invoice_number: str
    invoice_type: InvoiceType
    invoice_date: date
    seller: Party
    buyer: Party
    items: tuple
    totals: InvoiceTotals
    payment_mode: PaymentMode = PaymentMode.CASH
    discount_policy: DiscountTaxPolicy = DiscountTaxPolicy.PER_ITEM
    notes: str = ""
    custom_columns: List[str] = field(default_factory=list, compare=False)

    @property
    def status(self):
        return self.totals.status

    def to_dict(self) -> dict:
        """Plain-dict shape used by the exporters and reports."""
        rows = []
        for sr, line in enumerate(self.totals.lines, start=1):
            item = line.item
            rows.append({
                "sr": sr,
                "description": item.description,
                "hsn": item.hsn_code,
                "qty": item.quantity,
                "unit": item.unit,
                "unit_price": item.unit_price,
                "discount": item.line_discount,
                "rate": item.tax_rate_percent,
                "taxable": money(line.taxable_value),
                "cgst": money(line.cgst),
                "sgst": money(line.sgst),
                "igst": money(line.igst),
                "line_total": money(line.line_total_inclusive),
                **{col: item.custom_fields.get(col, "") for col in self.custom_columns},
            })
        return {
            "invoice_number": self.invoice_number,
            "type": self.invoice_type.value,
            "date": self.invoice_date.isoformat(),
            "seller": {"name": self.seller.name, "gstin": self.seller.gstin, "state": self.seller.state},
            "buyer": {"name": self.buyer.name, "gstin": self.buyer.gstin, "state": self.buyer.state},
            "payment_mode": self.payment_mode.value,
            "items": rows,
            "totals": self.totals.rounded().to_dict(),
            "notes": self.notes,
        }


def build_invoice(
    items: Sequence[LineItem],
    seller: Party,
    buyer: Party,
    invoice_number: str,
    *,
    invoice_type: InvoiceType = InvoiceType.SALE,
    invoice_date: Optional[date] = None,
    overall_discount: Number = 0,
    amount_paid: Number = 0,
    payment_mode: PaymentMode = PaymentMode.CASH,
    discount_policy: Optional[DiscountTaxPolicy] = None,
    max_items: Optional[int] = None,
    notes: str = "",
    custom_columns: Optional[List[str]] = None,
) -> Invoice:
    clashing = [c for c in custom_columns or [] if str(c).strip().lower() in ITEM_COLUMNS]
    if clashing:
        raise InvalidInvoiceContext(f"Custom column names clash with invoice columns: {clashing}", "custom_columns")
    policy = DiscountTaxPolicy(discount_policy or settings.DISCOUNT_TAX_POLICY)
    totals = compute_invoice_totals(
        list(items),
        overall_discount,
        seller.state,
        buyer.state,
        amount_paid,
        max_items=max_items,
        discount_policy=policy,
    )
    invoice = Invoice(
        invoice_number=invoice_number,
        invoice_type=InvoiceType(invoice_type),
        invoice_date=invoice_date or date.today(),
        seller=seller,
        buyer=buyer,
        items=tuple(items),
        totals=totals,
        payment_mode=PaymentMode(payment_mode),
        discount_policy=policy,
        notes=notes,
        custom_columns=list(custom_columns or []),
    )
    logger.info(
        "Built {} invoice {} for {}: grand_total={} status={}",
        invoice.invoice_type.value, invoice_number, buyer.name,
        money(totals.grand_total), totals.status.value,
    )
    return invoice


def record_payment(invoice: Invoice, amount: Number) -> Invoice:
    """New snapshot with the payment added; status and balance are recomputed."""
    try:
        payment = to_decimal(amount, "amount")
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInvoiceContext(f"Payment amount must be a number, got {amount!r}", "amount_paid") from exc
    if payment < Decimal("0"):
        raise InvalidInvoiceContext("Payment amount cannot be negative", "amount_paid")
    totals = compute_invoice_totals(
        list(invoice.items),
        invoice.totals.overall_discount,
        invoice.seller.state,
        invoice.buyer.state,
        invoice.totals.amount_paid + payment,
        discount_policy=invoice.discount_policy,
    )
    logger.info(
        "Recorded payment of {} on {}: {} -> {}",
        money(payment), invoice.invoice_number, invoice.status.value, totals.status.value,
    )
    return replace(invoice, totals=totals)
