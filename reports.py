"""
Reports over stored invoices.

Line tax is re-derived through tax_calc from each invoice's items rather than
read from the stored snapshot, so the intra/inter-state split and discount
policy of every invoice are honoured.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

import pandas as pd  # type: ignore

from invoices import Invoice, InvoiceType
from tax_calc import compute_invoice_totals

LINE_COLUMNS = [
    "invoice_number", "type", "date", "buyer", "payment_mode", "item", "hsn",
    "rate", "qty", "unit_price", "discount", "taxable", "cgst", "sgst", "igst", "tax",
]


def _f(value: Decimal) -> float:
    return float(value)


def invoices_to_frame(invoices: Iterable[Invoice], invoice_type: Optional[InvoiceType] = None) -> pd.DataFrame:
    """One row per line item."""
    rows = []
    for inv in invoices:
        if invoice_type is not None and inv.invoice_type != invoice_type:
            continue
        totals = compute_invoice_totals(
            list(inv.items),
            inv.totals.overall_discount,
            inv.seller.state,
            inv.buyer.state,
            discount_policy=inv.discount_policy,
        )
        for line in totals.lines:
            item = line.item
            rows.append({
                "invoice_number": inv.invoice_number,
                "type": inv.invoice_type.value,
                "date": inv.invoice_date,
                "buyer": inv.buyer.name,
                "payment_mode": inv.payment_mode.value,
                "item": item.description,
                "hsn": item.hsn_code,
                "rate": _f(item.tax_rate_percent),
                "qty": _f(item.quantity),
                "unit_price": _f(item.unit_price),
                "discount": _f(item.line_discount),
                "taxable": _f(line.tax_base),
                "cgst": _f(line.cgst),
                "sgst": _f(line.sgst),
                "igst": _f(line.igst),
                "tax": _f(line.tax_amount),
            })
    return pd.DataFrame(rows, columns=LINE_COLUMNS)


def gst_summary_by_rate(invoices: Iterable[Invoice], invoice_type: InvoiceType = InvoiceType.SALE) -> pd.DataFrame:
    """Taxable value and CGST/SGST/IGST collected per GST rate."""
    df = invoices_to_frame(invoices, invoice_type)
    summary = (
        df.groupby("rate")[["taxable", "cgst", "sgst", "igst", "tax"]]
        .sum()
        .rename(columns={"tax": "total_tax"})
        .sort_index()
    )
    return summary.round(2)


def payment_mode_summary(invoices: Iterable[Invoice], invoice_type: InvoiceType = InvoiceType.SALE) -> pd.DataFrame:
    records = [
        {"payment_mode": inv.payment_mode.value, "grand_total": _f(inv.totals.grand_total)}
        for inv in invoices
        if inv.invoice_type == invoice_type
    ]
    df = pd.DataFrame(records, columns=["payment_mode", "grand_total"])
    summary = df.groupby("payment_mode")["grand_total"].agg(["count", "sum"]).rename(columns={"sum": "total"})
    return summary.round(2)


def party_summary(invoices: Iterable[Invoice], invoice_type: InvoiceType = InvoiceType.SALE) -> pd.DataFrame:
    """Invoice count, billed amount and outstanding balance per buyer."""
    records = [
        {
            "buyer": inv.buyer.name,
            "grand_total": _f(inv.totals.grand_total),
            "balance_due": _f(inv.totals.balance_due),
        }
        for inv in invoices
        if inv.invoice_type == invoice_type
    ]
    df = pd.DataFrame(records, columns=["buyer", "grand_total", "balance_due"])
    summary = df.groupby("buyer").agg(
        invoices=("grand_total", "count"),
        grand_total=("grand_total", "sum"),
        balance_due=("balance_due", "sum"),
    )
    return summary.sort_values("grand_total", ascending=False).round(2)


def receivables(invoices: Iterable[Invoice]) -> Decimal:
    return sum(
        (inv.totals.balance_due for inv in invoices if inv.invoice_type == InvoiceType.SALE),
        Decimal("0"),
    )
