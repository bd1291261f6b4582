import io
import re
from decimal import Decimal
from typing import Dict, List, Optional

import pandas as pd # type: ignore
from PIL import Image, UnidentifiedImageError # type: ignore
import pytesseract # type: ignore
import pdfplumber # type: ignore
from loguru import logger

from tax_calc import BillingError, LineItem, Number, money, value_line

ITEM_LINE = re.compile(r"(.{3,100}?)\s+(\d{1,4}(?:\.\d{1,3})?)\s+([\d,]*\.\d{1,2}|\d+)")
QTY_COLUMNS = ("qty", "quantity")
PRICE_COLUMNS = ("unit_price", "unit price", "price", "rate")
# line totals, never a unit price
TOTAL_COLUMNS = ("amount", "total", "line_total", "line total")
DISCOUNT_COLUMNS = ("discount", "disc")
GST_COLUMNS = ("gst", "gst_rate", "gst%", "tax_rate")


def format_inr(val: Number) -> str:
    """Indian digit grouping, e.g. 1,23,456.78."""
    amount = money(val)
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}₹{whole}.{frac}"


def _text_from_pdf_bytes(pdf_bytes: bytes) -> str:
    text = ""
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        for page in pdf.pages:
            text += (page.extract_text() or "") + "\n"
    return text


def _ocr_image_bytes(img_bytes: bytes) -> str:
    img = Image.open(io.BytesIO(img_bytes))
    return pytesseract.image_to_string(img)


def extract_text(file_bytes: bytes, filename: str) -> str:
    fname = filename.lower()
    try:
        if fname.endswith(".pdf"):
            return _text_from_pdf_bytes(file_bytes)
        if fname.endswith((".png", ".jpg", ".jpeg")):
            return _ocr_image_bytes(file_bytes)
    except (UnidentifiedImageError, pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
        logger.warning("OCR failed for {}: {}", filename, exc)
    except Exception as exc:
        logger.warning("Text extraction failed for {}: {}", filename, exc)
    return ""


def _read_sheet(file_bytes: bytes, filename: str) -> Optional[pd.DataFrame]:
    reader = pd.read_csv if filename.lower().endswith(".csv") else pd.read_excel
    try:
        return reader(io.BytesIO(file_bytes))
    except (pd.errors.EmptyDataError, pd.errors.ParserError, ValueError) as exc:
        logger.warning("Could not read item sheet {}: {}", filename, exc)
        return None


def extract_line_items(file_bytes: bytes, filename: str) -> List[Dict]:
    fname = filename.lower()
    if fname.endswith((".csv", ".xlsx")):
        df = _read_sheet(file_bytes, filename)
        return [] if df is None else _items_from_dataframe(df)

    text = extract_text(file_bytes, filename)
    if not text:
        return []

    item_lines = []
    for line in (l.strip() for l in text.splitlines()):
        m = ITEM_LINE.search(line)
        if m:
            item_lines.append({
                "Description": m.group(1).strip(),
                "qty": m.group(2),
                "unit_price": m.group(3).replace(",", ""),
            })
    logger.debug("Found {} candidate item lines in {}", len(item_lines), filename)
    return item_lines


def _pick(columns: Dict[str, str], names) -> Optional[str]:
    for name in names:
        if name in columns:
            return columns[name]
    return None


def _items_from_dataframe(df: pd.DataFrame) -> List[Dict]:
    columns = {str(c).strip().lower(): c for c in df.columns}
    desc_col = _pick(columns, ("description", "item", "name")) or df.columns[0]
    qty_col = _pick(columns, QTY_COLUMNS) or (df.columns[1] if len(df.columns) > 1 else None)
    price_col = _pick(columns, PRICE_COLUMNS)
    if price_col is None and len(df.columns) > 2 and str(df.columns[2]).strip().lower() not in TOTAL_COLUMNS:
        price_col = df.columns[2]
    if qty_col is None or price_col is None:
        logger.warning("Item sheet needs description, quantity and price columns; got {}", list(df.columns))
        return []
    disc_col = _pick(columns, DISCOUNT_COLUMNS)
    gst_col = _pick(columns, GST_COLUMNS)

    items = []
    for _, row in df.iterrows():
        item = {"Description": str(row[desc_col]), "qty": row[qty_col], "unit_price": row[price_col]}
        if disc_col is not None and pd.notna(row[disc_col]):
            item["discount"] = row[disc_col]
        if gst_col is not None and pd.notna(row[gst_col]):
            item["rate"] = row[gst_col]
        items.append(item)
    return items


def normalize_item_dicts(items: List[Dict], hsn_lookup=None) -> List[LineItem]:
    """Turn imported rows into LineItems, defaulting HSN and GST rate from the lookup."""
    normalized = []
    for i, it in enumerate(items):
        desc = str(it.get("Description", "")).strip()
        hsn_code = str(it.get("hsn", "") or "")
        rate = it.get("rate")
        if hsn_lookup is not None and desc and (rate is None or not hsn_code):
            sugg = hsn_lookup.suggest(desc, limit=1)
            if sugg:
                hsn_code = hsn_code or sugg[0]["hsn_code"]
                rate = sugg[0]["rate"] if rate is None else rate
        try:
            item = LineItem(
                quantity=it.get("qty", 1),
                unit_price=it.get("unit_price", 0),
                line_discount=it.get("discount", Decimal("0")),
                tax_rate_percent=Decimal("0") if rate is None else rate,
                description=desc,
                hsn_code=hsn_code,
            )
            value_line(item, i)
            normalized.append(item)
        except BillingError as exc:
            logger.warning("Skipping imported row {} ('{}'): {}", i + 1, desc, exc)
    return normalized
