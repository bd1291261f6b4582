"""
Invoice tax computation.

Every screen that shows or stores invoice money (invoice form, POS checkout,
reports) goes through this module:

    value_line              one line item -> taxable value and GST amount
    compute_invoice_totals  line items + invoice context -> InvoiceTotals
    resolve_payment_status  grand total vs amount paid -> paid/partial/unpaid

All arithmetic is done in Decimal and nothing is rounded until
InvoiceTotals.rounded() is called for display or persistence. Payment
settlement (status and balance due) compares paise-rounded amounts so a
snapshot never shows a zero balance on a partial invoice.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Optional, Sequence, Union

from loguru import logger


ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")
PAISE = Decimal("0.01")

GST_SLABS = (0, 5, 12, 18, 28)

Number = Union[int, float, str, Decimal]
CustomValue = Union[str, Decimal, date]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class BillingError(ValueError):
    """Base class for invoice computation failures."""


class InvalidLineItem(BillingError):
    def __init__(self, message: str, index: Optional[int] = None, field: Optional[str] = None):
        self.index = index
        self.field = field
        prefix = f"Item {index + 1}: " if index is not None else ""
        super().__init__(prefix + message)


class InvalidInvoiceContext(BillingError):
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class TooManyLineItems(BillingError):
    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"Maximum {limit} items allowed per invoice (got {count})")


def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """Convert user/form input to Decimal. Floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, bool) or value is None:
        raise InvalidOperation(f"{field_name} is not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        result = Decimal(str(value).strip())
    if not result.is_finite():
        raise InvalidOperation(f"{field_name} is not a finite number: {value!r}")
    return result


def money(val: Number) -> Decimal:
    """Round to 2 decimals consistently for money values."""
    return to_decimal(val, "amount").quantize(PAISE, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class DiscountTaxPolicy(str, Enum):
    # overall discount lowers taxable amount and grand total, GST stays per item
    PER_ITEM = "per_item"
    # overall discount is apportioned to lines before GST is computed
    PRORATED = "prorated"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


@dataclass(frozen=True)
class LineItem:
    quantity: Decimal
    unit_price: Decimal
    line_discount: Decimal = ZERO
    tax_rate_percent: Decimal = ZERO
    description: str = ""
    hsn_code: str = ""
    unit: str = "Pcs"
    product_id: Optional[str] = None
    # user-defined columns, never read by the computation
    custom_fields: Dict[str, CustomValue] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        for name in ("quantity", "unit_price", "line_discount", "tax_rate_percent"):
            raw = getattr(self, name)
            try:
                object.__setattr__(self, name, to_decimal(raw, name))
            except (InvalidOperation, ValueError) as exc:
                raise InvalidLineItem(f"{name} must be a number, got {raw!r}", field=name) from exc

    @property
    def gross_amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class LineValuation:
    item: LineItem
    gross_amount: Decimal
    line_discount: Decimal
    taxable_value: Decimal
    tax_amount: Decimal
    allocated_discount: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO

    @property
    def tax_base(self) -> Decimal:
        return self.taxable_value - self.allocated_discount

    @property
    def line_total_exclusive(self) -> Decimal:
        return self.taxable_value

    @property
    def line_total_inclusive(self) -> Decimal:
        return self.taxable_value + self.tax_amount

    def split(self, inter_state: bool) -> "LineValuation":
        if inter_state:
            return replace(self, cgst=ZERO, sgst=ZERO, igst=self.tax_amount)
        half = self.tax_amount / TWO
        return replace(self, cgst=half, sgst=half, igst=ZERO)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal = ZERO
    item_discount_total: Decimal = ZERO
    overall_discount: Decimal = ZERO
    total_discount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    total_tax: Decimal = ZERO
    grand_total: Decimal = ZERO
    amount_paid: Decimal = ZERO
    balance_due: Decimal = ZERO
    status: PaymentStatus = PaymentStatus.PAID
    is_inter_state: bool = False
    lines: tuple = ()

    MONEY_FIELDS = (
        "subtotal", "item_discount_total", "overall_discount", "total_discount",
        "taxable_amount", "cgst", "sgst", "igst", "total_tax", "grand_total",
        "amount_paid", "balance_due",
    )

    def rounded(self) -> "InvoiceTotals":
        """Same totals with every money field quantised to paise."""
        return replace(self, **{name: money(getattr(self, name)) for name in self.MONEY_FIELDS})

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "lines"}
        data["status"] = self.status.value
        return data


# ---------------------------------------------------------------------------
# LineItemValuer
# ---------------------------------------------------------------------------

def value_line(item: LineItem, index: Optional[int] = None) -> LineValuation:
    """
    Taxable value and GST amount for one line.

    taxable = qty * price - line discount, tax = taxable * rate / 100.
    Negative inputs and a discount above the gross amount are rejected,
    never clamped.
    """
    if item.quantity <= ZERO:
        raise InvalidLineItem("Quantity must be greater than 0", index, "quantity")
    if item.unit_price < ZERO:
        raise InvalidLineItem("Unit price cannot be negative", index, "unit_price")
    if item.line_discount < ZERO:
        raise InvalidLineItem("Discount cannot be negative", index, "line_discount")
    if item.tax_rate_percent < ZERO:
        raise InvalidLineItem("GST rate cannot be negative", index, "tax_rate_percent")

    gross = item.gross_amount
    if item.line_discount > gross:
        raise InvalidLineItem(
            f"Discount {item.line_discount} exceeds line amount {gross}", index, "line_discount"
        )
    if item.tax_rate_percent not in GST_SLABS:
        logger.debug("Non-standard GST rate {}% on '{}'", item.tax_rate_percent, item.description)

    taxable = gross - item.line_discount
    return LineValuation(
        item=item,
        gross_amount=gross,
        line_discount=item.line_discount,
        taxable_value=taxable,
        tax_amount=taxable * item.tax_rate_percent / HUNDRED,
    )


# ---------------------------------------------------------------------------
# InvoiceTotalsCalculator
# ---------------------------------------------------------------------------

def normalize_state(state: Optional[str]) -> str:
    return " ".join((state or "").split()).casefold()


def is_inter_state(seller_state: Optional[str], buyer_state: Optional[str]) -> bool:
    """Unknown (empty) state on either side means intra-state."""
    seller, buyer = normalize_state(seller_state), normalize_state(buyer_state)
    if not seller or not buyer:
        return False
    return seller != buyer


def _context_amount(value: Number, name: str) -> Decimal:
    try:
        amount = to_decimal(value, name)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInvoiceContext(f"{name} must be a number, got {value!r}", name) from exc
    if amount < ZERO:
        raise InvalidInvoiceContext(f"{name} cannot be negative", name)
    return amount


def _prorate(valuations: list, overall_discount: Decimal) -> list:
    base = sum((v.taxable_value for v in valuations), ZERO)
    if overall_discount == ZERO or base == ZERO:
        return valuations
    prorated = []
    for v in valuations:
        share = overall_discount * v.taxable_value / base
        tax = (v.taxable_value - share) * v.item.tax_rate_percent / HUNDRED
        prorated.append(replace(v, allocated_discount=share, tax_amount=tax))
    return prorated


def compute_invoice_totals(
    line_items: Sequence[LineItem],
    overall_discount: Number = ZERO,
    seller_state: Optional[str] = "",
    buyer_state: Optional[str] = "",
    amount_paid: Number = ZERO,
    *,
    max_items: Optional[int] = None,
    discount_policy: DiscountTaxPolicy = DiscountTaxPolicy.PER_ITEM,
) -> InvoiceTotals:
    """
    Subtotal, discounts, CGST/SGST or IGST, grand total and payment status.

    Every line is validated before anything is summed, so a bad line fails
    the whole computation. Zero line items is valid and gives zero totals.
    """
    if max_items is not None and len(line_items) > max_items:
        raise TooManyLineItems(len(line_items), max_items)

    overall = _context_amount(overall_discount, "overall_discount")
    paid = _context_amount(amount_paid, "amount_paid")
    policy = DiscountTaxPolicy(discount_policy)

    valuations = [value_line(item, i) for i, item in enumerate(line_items)]

    subtotal = sum((v.gross_amount for v in valuations), ZERO)
    item_discounts = sum((v.line_discount for v in valuations), ZERO)
    if overall > subtotal - item_discounts:
        raise InvalidInvoiceContext(
            f"Overall discount {overall} exceeds the discounted item total {subtotal - item_discounts}",
            "overall_discount",
        )
    total_discount = item_discounts + overall
    taxable_amount = subtotal - total_discount

    if policy is DiscountTaxPolicy.PRORATED:
        valuations = _prorate(valuations, overall)

    inter_state = is_inter_state(seller_state, buyer_state)
    lines = tuple(v.split(inter_state) for v in valuations)

    cgst = sum((v.cgst for v in lines), ZERO)
    sgst = sum((v.sgst for v in lines), ZERO)
    igst = sum((v.igst for v in lines), ZERO)
    total_tax = cgst + sgst + igst
    grand_total = taxable_amount + total_tax

    totals = InvoiceTotals(
        subtotal=subtotal,
        item_discount_total=item_discounts,
        overall_discount=overall,
        total_discount=total_discount,
        taxable_amount=taxable_amount,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        total_tax=total_tax,
        grand_total=grand_total,
        amount_paid=paid,
        balance_due=max(ZERO, money(grand_total) - money(paid)),
        status=resolve_payment_status(grand_total, paid),
        is_inter_state=inter_state,
        lines=lines,
    )
    logger.debug(
        "Computed totals for {} items: taxable={} tax={} grand_total={} status={}",
        len(lines), taxable_amount, total_tax, grand_total, totals.status.value,
    )
    return totals


# ---------------------------------------------------------------------------
# PaymentStatusResolver
# ---------------------------------------------------------------------------

def resolve_payment_status(grand_total: Number, amount_paid: Number) -> PaymentStatus:
    # settled in paise; order matters: a zero grand total is paid whatever was received
    total = money(to_decimal(grand_total, "grand_total"))
    paid = money(_context_amount(amount_paid, "amount_paid"))
    if paid >= total:
        return PaymentStatus.PAID
    if paid > ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID
