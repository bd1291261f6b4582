from decimal import Decimal
from io import BytesIO

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from utils import format_inr


def _plain(value):
    return float(value) if isinstance(value, Decimal) else value


def _frame(records) -> pd.DataFrame:
    return pd.DataFrame([{k: _plain(v) for k, v in rec.items()} for rec in records])


def _summary_rows(totals):
    rows = [
        ("Subtotal", totals["subtotal"]),
        ("Discount", totals["total_discount"]),
        ("Taxable Amount", totals["taxable_amount"]),
    ]
    if totals["is_inter_state"]:
        rows.append(("IGST", totals["igst"]))
    else:
        rows.append(("CGST", totals["cgst"]))
        rows.append(("SGST", totals["sgst"]))
    rows += [
        ("Total GST", totals["total_tax"]),
        ("Grand Total", totals["grand_total"]),
        ("Amount Paid", totals["amount_paid"]),
        ("Balance Due", totals["balance_due"]),
    ]
    return rows


def generate_invoice_pdf(invoice_dict):
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    title = "TAX INVOICE" if invoice_dict.get("type", "sale") == "sale" else "PURCHASE INVOICE"

    # Set initial coordinates
    x, y = 40, height - 40

    # Header Section
    c.setFont("Helvetica-Bold", 14)
    c.drawCentredString(width/2, y, title)
    y -= 30

    # Invoice Details
    c.setFont("Helvetica", 10)
    c.drawString(x, y, f"Invoice: {invoice_dict['invoice_number']}")
    c.drawString(width/2, y, f"Date: {invoice_dict['date']}")
    y -= 20

    # Seller Information
    seller, buyer = invoice_dict["seller"], invoice_dict["buyer"]
    c.drawString(x, y, f"Seller: {seller['name']}")
    c.drawString(width/2, y, f"GSTIN: {seller.get('gstin', '')}  State: {seller.get('state', '')}")
    y -= 20

    # Buyer Information
    c.drawString(x, y, f"Buyer: {buyer.get('name', '')}")
    c.drawString(width/2, y, f"GSTIN: {buyer.get('gstin', '')}  State: {buyer.get('state', '')}")
    y -= 30

    # Table Header
    c.setFont("Helvetica-Bold", 9)
    headers = ["Sr", "Description", "HSN", "Qty", "Rate", "Disc", "GST%", "Taxable", "Tax"]
    positions = [x, x+25, x+190, x+240, x+280, x+335, x+380, x+420, x+480]

    for header, pos in zip(headers, positions):
        c.drawString(pos, y, header)
    y -= 18

    # Table Items
    c.setFont("Helvetica", 9)
    for item in invoice_dict["items"]:
        tax = item["cgst"] + item["sgst"] + item["igst"]
        cells = [
            str(item["sr"]),
            str(item["description"])[:32],
            str(item.get("hsn", "")),
            f"{item['qty']}",
            f"{item['unit_price']:.2f}",
            f"{item['discount']:.2f}",
            f"{item['rate']}",
            f"{item['taxable']:.2f}",
            f"{tax:.2f}",
        ]
        for cell, pos in zip(cells, positions):
            c.drawString(pos, y, cell)
        y -= 15

        # Page break if needed
        if y < 160:
            c.showPage()
            y = height - 40
            c.setFont("Helvetica", 9)

    # Totals
    y -= 15
    totals = invoice_dict["totals"]
    for label, value in _summary_rows(totals):
        bold = label in ("Grand Total", "Balance Due")
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
        c.drawString(positions[5], y, f"{label}:")
        c.drawRightString(width - 40, y, format_inr(value).replace("₹", "Rs. "))
        y -= 15
    c.setFont("Helvetica-Bold", 10)
    c.drawString(x, y, f"Status: {totals['status'].upper()}")

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.read()


def generate_invoice_xlsx_bytes(invoice_dict):
    df = _frame(invoice_dict["items"])
    buffer = BytesIO()

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Items")
        totals_df = _frame([invoice_dict["totals"]])
        totals_df.to_excel(writer, index=False, sheet_name="Totals")

    buffer.seek(0)
    return buffer.getvalue()


def generate_invoice_csv_bytes(invoice_dict):
    df = _frame(invoice_dict["items"])
    buffer = BytesIO()
    buffer.write(df.to_csv(index=False).encode('utf-8'))
    buffer.seek(0)
    return buffer.getvalue()
