import streamlit as st
import os
import json
from decimal import Decimal

from config import settings
from logging_config import setup_logging
from hsn_lookup import HSNLookup
from invoices import InvoiceNumberSequence, InvoiceType, Party, PaymentMode, build_invoice, record_payment
from invoice_generator import generate_invoice_pdf, generate_invoice_csv_bytes, generate_invoice_xlsx_bytes
from pos import Cart, Product, WALK_IN
from reports import gst_summary_by_rate, invoices_to_frame, party_summary, payment_mode_summary, receivables
from tax_calc import GST_SLABS, BillingError, LineItem
from utils import extract_line_items, format_inr, normalize_item_dicts

INDIAN_STATES = [
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh", "Goa", "Gujarat",
    "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka", "Kerala", "Madhya Pradesh",
    "Maharashtra", "Manipur", "Meghalaya", "Mizoram", "Nagaland", "Odisha", "Punjab",
    "Rajasthan", "Sikkim", "Tamil Nadu", "Telangana", "Tripura", "Uttar Pradesh",
    "Uttarakhand", "West Bengal", "Delhi", "Jammu & Kashmir", "Ladakh",
]

CATALOG = [
    Product("P001", "Samsung Galaxy M14", "13999", 18, 25, hsn_code="8517"),
    Product("P002", "Basmati Rice 5kg", "450", 5, 120, unit="Pack", hsn_code="1006"),
    Product("P003", "Cotton T-Shirt", "399", 5, 60, hsn_code="6109"),
    Product("P004", "Paracetamol 500mg (Strip)", "30", 12, 300, hsn_code="3004"),
    Product("P005", "Split AC 1.5 Ton", "32990", 28, 5, hsn_code="8415"),
    Product("P006", "Notebook A4 (Pack of 6)", "240", 12, 80, unit="Pack", hsn_code="4820"),
]

# ---------------------------------------------------
# PAGE CONFIG
# ---------------------------------------------------
st.set_page_config(page_title="GST Billing", layout="wide")


@st.cache_resource
def _init_logging():
    setup_logging()
    return True


@st.cache_resource
def load_hsn():
    if not os.path.exists(settings.HSN_CSV_PATH):
        return None
    return HSNLookup(settings.HSN_CSV_PATH)


_init_logging()
hsn = load_hsn()

if "invoices" not in st.session_state:
    st.session_state.invoices = []
if "numbers" not in st.session_state:
    st.session_state.numbers = InvoiceNumberSequence()
if "cart" not in st.session_state:
    st.session_state.cart = Cart()
if "invoice_items" not in st.session_state:
    st.session_state.invoice_items = []

SELLER = Party(name=settings.SELLER_NAME, state=settings.SELLER_STATE, gstin=settings.SELLER_GSTIN)

st.markdown("""
    <style>
        .summary-box {
            background-color: #eaf1fb;
            padding: 12px 18px;
            border-radius: 8px;
            font-weight: 600;
            margin-top: 15px;
            border-left: 4px solid #0b5394;
        }
    </style>
""", unsafe_allow_html=True)

st.title(f"🧾 {SELLER.name}")
st.caption(f"GSTIN: {SELLER.gstin} | State: {SELLER.state}")


def show_totals(totals):
    t = totals.rounded()
    tax_line = (
        f"IGST: {format_inr(t.igst)}" if t.is_inter_state
        else f"CGST: {format_inr(t.cgst)} | SGST: {format_inr(t.sgst)}"
    )
    st.markdown(f"""
    <div class="summary-box">
        Subtotal: {format_inr(t.subtotal)} | Discount: {format_inr(t.total_discount)}<br>
        Taxable Amount: {format_inr(t.taxable_amount)}<br>
        {tax_line} | Total GST: {format_inr(t.total_tax)}<br>
        <b>Grand Total: {format_inr(t.grand_total)}</b><br>
        Paid: {format_inr(t.amount_paid)} | Balance Due: {format_inr(t.balance_due)} | Status: {t.status.value.upper()}
    </div>
    """, unsafe_allow_html=True)


def download_buttons(invoice, key):
    data = invoice.to_dict()
    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button("📄 Download Invoice (PDF)", data=generate_invoice_pdf(data),
                           file_name=f"{invoice.invoice_number}.pdf", mime="application/pdf", key=f"pdf{key}")
    with col2:
        st.download_button("📊 Download Invoice (CSV)", data=generate_invoice_csv_bytes(data),
                           file_name=f"{invoice.invoice_number}.csv", mime="text/csv", key=f"csv{key}")
    with col3:
        st.download_button("📘 Download Invoice (Excel)", data=generate_invoice_xlsx_bytes(data),
                           file_name=f"{invoice.invoice_number}.xlsx",
                           mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                           key=f"xlsx{key}")


tab_invoice, tab_pos, tab_bulk, tab_reports = st.tabs(["Invoice", "POS", "Bulk Import", "Reports"])

# ---------------------------------------------------
# INVOICE
# ---------------------------------------------------
with tab_invoice:
    invoice_type = st.radio("Invoice Type", [t.value for t in InvoiceType], horizontal=True)
    col1, col2 = st.columns(2)
    with col1:
        buyer_name = st.text_input("Party Name")
        buyer_gstin = st.text_input("Party GSTIN")
    with col2:
        buyer_state = st.selectbox("Party State", [""] + INDIAN_STATES)
        payment_mode = st.selectbox("Payment Mode", [m.value for m in PaymentMode])

    items = st.session_state.invoice_items
    col1, col2 = st.columns(2)
    with col1:
        if st.button("➕ Add Item"):
            if len(items) >= settings.MAX_LINE_ITEMS:
                st.warning(f"Maximum {settings.MAX_LINE_ITEMS} items allowed per invoice")
            else:
                items.append({"description": "", "qty": 1.0, "unit_price": 0.0, "discount": 0.0,
                              "rate": 18, "hsn": ""})
    with col2:
        if st.button("➖ Remove Item") and items:
            items.pop()

    for i, it in enumerate(items):
        st.markdown(f"**Item {i+1}**")
        c1, c2, c3, c4, c5 = st.columns([3, 1, 1, 1, 1])
        it["description"] = c1.text_input("Description", value=it["description"], key=f"item{i}")
        it["qty"] = c2.number_input("Qty", min_value=0.001, value=float(it["qty"]), key=f"qty{i}")
        it["unit_price"] = c3.number_input("Rate", min_value=0.0, value=float(it["unit_price"]), key=f"amt{i}")
        it["discount"] = c4.number_input("Discount", min_value=0.0, value=float(it["discount"]), key=f"disc{i}")

        # Lookup HSN and GST
        if hsn is not None and it["description"] and not it["hsn"]:
            sugg = hsn.suggest(it["description"], limit=1)
            if sugg:
                it["hsn"] = sugg[0]["hsn_code"]
                if int(sugg[0]["rate"]) in GST_SLABS:
                    it["rate"] = int(sugg[0]["rate"])
                st.caption(f"Auto HSN: {it['hsn']} | GST Rate: {sugg[0]['rate']}%")
        it["rate"] = c5.selectbox("GST %", GST_SLABS, index=GST_SLABS.index(it["rate"]) if it["rate"] in GST_SLABS else 0,
                                  key=f"rate{i}")

    overall_discount = st.number_input("Overall Discount", min_value=0.0, value=0.0)
    amount_paid = st.number_input("Amount Paid", min_value=0.0, value=0.0)

    try:
        line_items = [
            LineItem(quantity=it["qty"], unit_price=it["unit_price"], line_discount=it["discount"],
                     tax_rate_percent=it["rate"], description=it["description"], hsn_code=it["hsn"])
            for it in items
        ]
        buyer = Party(name=buyer_name, state=buyer_state, gstin=buyer_gstin)
        seller = SELLER
        if invoice_type == InvoiceType.PURCHASE.value:
            seller, buyer = buyer, SELLER
        draft = build_invoice(
            line_items, seller, buyer, "DRAFT",
            invoice_type=invoice_type, overall_discount=overall_discount, amount_paid=amount_paid,
            payment_mode=payment_mode, max_items=settings.MAX_LINE_ITEMS,
        )
        show_totals(draft.totals)
    except BillingError as e:
        draft = None
        st.error(str(e))

    if st.button("Save Invoice") and draft is not None:
        if not items:
            st.warning("Please add at least one item to generate the invoice.")
        elif not buyer_name:
            st.warning("Party name is required.")
        else:
            number = st.session_state.numbers.next(InvoiceType(invoice_type))
            invoice = build_invoice(
                draft.items, draft.seller, draft.buyer, number,
                invoice_type=invoice_type, overall_discount=overall_discount, amount_paid=amount_paid,
                payment_mode=payment_mode, max_items=settings.MAX_LINE_ITEMS,
            )
            st.session_state.invoices.append(invoice)
            st.session_state.invoice_items = []
            st.success(f"✅ Saved {number}")
            download_buttons(invoice, number)

# ---------------------------------------------------
# POS
# ---------------------------------------------------
with tab_pos:
    cart = st.session_state.cart
    search = st.text_input("Search products")
    for product in CATALOG:
        if search and search.lower() not in product.name.lower():
            continue
        c1, c2 = st.columns([4, 1])
        c1.write(f"{product.name} | {format_inr(product.unit_price)} | GST {product.gst_rate}% | Stock {product.stock}")
        if c2.button("Add", key=f"add{product.product_id}"):
            try:
                cart.add(product)
            except BillingError as e:
                st.error(str(e))

    for line in cart.items:
        c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
        c1.write(f"{line.description} x {line.quantity}")
        if c2.button("➕", key=f"inc{line.product_id}"):
            try:
                cart.update_quantity(line.product_id, 1)
            except BillingError as e:
                st.error(str(e))
        if c3.button("➖", key=f"dec{line.product_id}"):
            if cart.update_quantity(line.product_id, -1) is None:
                continue
        disc = c4.number_input("Disc", min_value=0.0, value=float(line.line_discount), key=f"pdisc{line.product_id}")
        cart.set_discount(line.product_id, disc)

    customer_state = st.selectbox("Customer State", [""] + INDIAN_STATES, key="pos_state")
    pos_mode = st.selectbox("Payment", ["cash", "upi", "card", "bank_transfer"], key="pos_mode")
    try:
        cart.set_overall_discount(st.number_input("Cart Discount", min_value=0.0, value=0.0, key="pos_disc"))
        if len(cart):
            show_totals(cart.totals(SELLER.state, customer_state))
        if st.button("Complete Sale", disabled=not len(cart)):
            buyer = Party(name=WALK_IN.name, state=customer_state)
            invoice = cart.checkout(SELLER, st.session_state.numbers, buyer, PaymentMode(pos_mode))
            st.session_state.invoices.append(invoice)
            st.success(f"Sale of {format_inr(invoice.totals.grand_total)} completed! ({invoice.invoice_number})")
            download_buttons(invoice, invoice.invoice_number)
    except BillingError as e:
        st.error(str(e))

# ---------------------------------------------------
# BULK IMPORT
# ---------------------------------------------------
with tab_bulk:
    uploaded_bulk = st.file_uploader(
        "Upload invoice files (PDF/IMG/CSV/XLSX)",
        type=['pdf', 'png', 'jpg', 'jpeg', 'csv', 'xlsx'],
        accept_multiple_files=True
    )
    bulk_state = st.selectbox("Buyer State", [""] + INDIAN_STATES, key="bulk_state")

    if uploaded_bulk and st.button("Process Bulk Files"):
        for up in uploaded_bulk:
            st.info(f"Processing {up.name} ...")
            rows = extract_line_items(up.read(), up.name)
            line_items = normalize_item_dicts(rows, hsn)
            if not line_items:
                st.warning(f"No items found in {up.name}")
                continue
            try:
                invoice = build_invoice(
                    line_items, SELLER, Party(name=os.path.splitext(up.name)[0], state=bulk_state),
                    st.session_state.numbers.next(InvoiceType.SALE),
                )
            except BillingError as e:
                st.error(f"Error processing {up.name}: {e}")
                continue
            st.session_state.invoices.append(invoice)
            st.success(f"✅ {up.name}: {len(line_items)} items → {invoice.invoice_number}")

# ---------------------------------------------------
# REPORTS
# ---------------------------------------------------
with tab_reports:
    invoices = st.session_state.invoices
    if not invoices:
        st.info("📝 No invoice data available. Create, sell or import invoices first.")
    else:
        df_all = invoices_to_frame(invoices)

        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Total Invoices", len(invoices))
        col2.metric("Unique Parties", df_all["buyer"].nunique())
        col3.metric("Total Items", len(df_all))
        col4.metric("Receivables", format_inr(receivables(invoices)))

        st.markdown("### GST Summary (Sales)")
        st.dataframe(gst_summary_by_rate(invoices), use_container_width=True)
        st.markdown("### Payment Modes")
        st.dataframe(payment_mode_summary(invoices), use_container_width=True)
        st.markdown("### Parties")
        st.dataframe(party_summary(invoices), use_container_width=True)

        st.markdown("### Record Payment")
        unpaid = [inv for inv in invoices if inv.totals.balance_due > 0]
        if unpaid:
            number = st.selectbox("Invoice", [inv.invoice_number for inv in unpaid])
            amount = st.number_input("Amount Received", min_value=0.0, value=0.0)
            if st.button("Record"):
                idx = next(i for i, inv in enumerate(invoices) if inv.invoice_number == number)
                try:
                    invoices[idx] = record_payment(invoices[idx], amount)
                    st.success(f"{number} is now {invoices[idx].status.value}")
                except BillingError as e:
                    st.error(str(e))

        st.markdown("### 📄 All Line Items")
        st.dataframe(df_all, use_container_width=True)

        out_json = json.dumps([inv.to_dict() for inv in invoices], indent=4, ensure_ascii=False,
                              default=lambda v: float(v) if isinstance(v, Decimal) else str(v)).encode('utf-8')
        col1, col2 = st.columns(2)
        with col1:
            st.download_button("⬇️ Download as CSV (.csv)", data=df_all.to_csv(index=False).encode('utf-8'),
                               file_name="combined_invoices.csv", mime="text/csv")
        with col2:
            st.download_button("⬇️ Download as JSON (.json)", data=out_json,
                               file_name="combined_invoices.json", mime="application/json")
