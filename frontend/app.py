"""
SmartInvoice — 🧾 Invoice editor
Smart fill → Header and line items → Live GST totals → Pay or download PDF.
"""
import os
import sys

import streamlit as st

sys.path.insert(0, os.path.dirname(__file__))
from theme import api_post, error_detail, inject_css, inr, status_pill

st.set_page_config(page_title="SmartInvoice | Editor", page_icon="🧾", layout="wide")
inject_css()


# ── Session helpers ─────────────────────────────────────
def _bump() -> None:
    # new widget keys so inputs pick up programmatic changes
    st.session_state["rev"] = st.session_state.get("rev", 0) + 1


def _set_invoice(inv: dict) -> None:
    st.session_state["invoice"] = inv
    st.session_state.pop("pdf", None)
    _bump()


def _apply_edit(res) -> None:
    if res.status_code == 200:
        _set_invoice(res.json()["invoice"])
    else:
        st.session_state["edit_error"] = error_detail(res)
        _bump()


def _on_field(field: str, widget_key: str) -> None:
    inv = st.session_state["invoice"]
    _apply_edit(api_post("/api/invoices/fields", {"invoice": inv, "field": field, "value": st.session_state[widget_key]}))


def _on_item(item_id: str, field: str, widget_key: str) -> None:
    inv = st.session_state["invoice"]
    _apply_edit(
        api_post(f"/api/invoices/items/{item_id}", {"invoice": inv, "field": field, "value": st.session_state[widget_key]})
    )


def _on_total(item_id: str, widget_key: str) -> None:
    inv = st.session_state["invoice"]
    _apply_edit(api_post(f"/api/invoices/items/{item_id}/total", {"invoice": inv, "total": st.session_state[widget_key]}))


def _on_remove(item_id: str) -> None:
    _apply_edit(api_post(f"/api/invoices/items/{item_id}/remove", st.session_state["invoice"]))


def _new_invoice() -> bool:
    try:
        res = api_post("/api/invoices/new")
    except Exception as e:
        st.error(f"Backend not reachable: {e}")
        return False
    if res.status_code != 200:
        st.error(f"Could not create invoice: {error_detail(res)}")
        return False
    _set_invoice(res.json())
    return True


if "invoice" not in st.session_state and not _new_invoice():
    st.stop()

inv = st.session_state["invoice"]
rev = st.session_state.get("rev", 0)
k = f"{rev}-{inv['invoiceNumber']}"

st.markdown('<div class="page-title">🧾 SmartInvoice</div>', unsafe_allow_html=True)
st.markdown(
    f'<div class="page-subtitle">Invoice <span class="si-invoice-no">{inv["invoiceNumber"]}</span> {status_pill(inv["isPaid"])}</div>',
    unsafe_allow_html=True,
)

left, right = st.columns([0.45, 0.55], gap="large")

with left:
    # ── Smart fill ──────────────────────────────────────
    with st.container(border=True):
        st.markdown("**✨ Smart Fill**")
        text = st.text_area(
            "Describe changes",
            key=f"{k}-smart",
            placeholder='e.g. "Bill Ravi Traders, 2 laptops for 1,18,000 total, mark as paid"',
            label_visibility="collapsed",
        )
        if st.button("Apply", disabled=not text.strip(), use_container_width=True):
            with st.spinner("Thinking..."):
                res = api_post("/api/invoices/smart-fill", {"invoice": inv, "text": text}, timeout=120)
            if res.status_code == 200:
                _set_invoice(res.json()["invoice"])
                st.rerun()
            else:
                st.error(error_detail(res))

    edit_error = st.session_state.pop("edit_error", None)
    if edit_error:
        st.error(edit_error)

    # ── Header fields ───────────────────────────────────
    def field_input(box, label: str, field: str, area: bool = False) -> None:
        wk = f"{k}-{field}"
        widget = box.text_area if area else box.text_input
        widget(label, inv[field], key=wk, on_change=_on_field, args=(field, wk))

    c1, c2 = st.columns(2)
    field_input(c1, "Invoice date", "date")
    field_input(c2, "Due date", "dueDate")

    with st.expander("Sender", expanded=False):
        for field, label in [
            ("senderName", "Name"),
            ("senderEmail", "Email"),
            ("senderGstin", "GSTIN"),
            ("senderPan", "PAN"),
            ("senderCin", "CIN"),
        ]:
            field_input(st, label, field)
        field_input(st, "Address", "senderAddress", area=True)

    with st.expander("Client", expanded=True):
        for field, label in [
            ("clientName", "Name"),
            ("clientEmail", "Email"),
            ("clientPhone", "Phone"),
            ("clientGstin", "GSTIN"),
            ("clientStateCode", "State code"),
        ]:
            field_input(st, label, field)
        field_input(st, "Address", "clientAddress", area=True)
        field_input(st, "Place of delivery", "deliveryPlace")

    st.number_input(
        "GST rate % (CGST + SGST)",
        value=float(inv["taxRate"]),
        min_value=0.0,
        step=0.5,
        key=f"{k}-taxRate",
        on_change=_on_field,
        args=("taxRate", f"{k}-taxRate"),
    )

    # ── Line items ──────────────────────────────────────
    st.markdown("**Line items**")
    totals_res = api_post("/api/invoices/totals", inv)
    line_totals = {}
    if totals_res.status_code == 200:
        line_totals = {line["id"]: line["itemTotal"] for line in totals_res.json()["lines"]}

    for item in inv["items"]:
        ik = f"{k}-{item['id']}"
        with st.container(border=True):
            st.text_input(
                "Description", item["description"], key=f"{ik}-description",
                on_change=_on_item, args=(item["id"], "description", f"{ik}-description"),
            )
            a, b, c = st.columns(3)
            a.text_input("HSN", item["hsnCode"], key=f"{ik}-hsnCode", on_change=_on_item, args=(item["id"], "hsnCode", f"{ik}-hsnCode"))
            b.number_input(
                "Qty", value=float(item["quantity"]), min_value=0.0, key=f"{ik}-quantity",
                on_change=_on_item, args=(item["id"], "quantity", f"{ik}-quantity"),
            )
            c.text_input("Unit", item["unit"], key=f"{ik}-unit", on_change=_on_item, args=(item["id"], "unit", f"{ik}-unit"))
            d, e, f = st.columns([0.4, 0.45, 0.15])
            d.number_input(
                "Rate (excl. tax)", value=float(item["price"]), format="%.4f", key=f"{ik}-price",
                on_change=_on_item, args=(item["id"], "price", f"{ik}-price"),
            )
            e.number_input(
                "Total (incl. tax)", value=float(line_totals.get(item["id"], 0.0)), format="%.2f", key=f"{ik}-total",
                on_change=_on_total, args=(item["id"], f"{ik}-total"),
            )
            f.button("🗑️", key=f"{ik}-del", on_click=_on_remove, args=(item["id"],))

    if st.button("➕ Add item", use_container_width=True):
        res = api_post("/api/invoices/items", inv)
        if res.status_code == 200:
            _set_invoice(res.json())
            st.rerun()
        st.error(error_detail(res))

    field_input(st, "Notes", "notes", area=True)

with right:
    summary_res = totals_res
    if summary_res.status_code != 200:
        st.error(f"Could not compute totals: {error_detail(summary_res)}")
    else:
        summary = summary_res.json()
        shown = summary["display"]
        half = summary["halfRate"]
        st.markdown("### Preview")
        st.table(
            {
                "Description": [i["description"] or "-" for i in inv["items"]],
                "Qty": [i["quantity"] for i in inv["items"]],
                "Taxable": [inr(line["display"]["taxableValue"]) for line in summary["lines"]],
                f"CGST {half:g}%": [inr(line["display"]["halfA"]) for line in summary["lines"]],
                f"SGST {half:g}%": [inr(line["display"]["halfB"]) for line in summary["lines"]],
                "Total": [inr(line["display"]["total"]) for line in summary["lines"]],
            }
        )
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Taxable", inr(shown["totalTaxable"]))
        m2.metric("CGST", inr(shown["totalHalfA"]))
        m3.metric("SGST", inr(shown["totalHalfB"]))
        m4.metric("Total", inr(shown["grandTotal"]))
        st.markdown(f'<div class="words">Invoice value in words: {summary["words"]["grandTotal"]}</div>', unsafe_allow_html=True)

    st.divider()
    a, b, c = st.columns(3)
    if a.button("💳 Pay Now", use_container_width=True, type="primary", disabled=inv["isPaid"]):
        with st.spinner("Processing payment..."):
            res = api_post("/api/invoices/pay", {"invoice": inv})
        if res.status_code == 200:
            _set_invoice(res.json()["invoice"])
            st.success("Payment successful. Invoice saved to history.")
            st.rerun()
        else:
            st.error(error_detail(res))

    if b.button("📄 Prepare PDF", use_container_width=True):
        res = api_post("/api/invoices/pdf", inv, timeout=120)
        if res.status_code == 200:
            st.session_state["pdf"] = (f"Invoice-{inv['invoiceNumber']}.pdf", res.content)
        else:
            st.error(f"Could not generate PDF: {error_detail(res)}")
    if st.session_state.get("pdf"):
        name, data = st.session_state["pdf"]
        st.download_button("⬇️ Download " + name, data=data, file_name=name, mime="application/pdf", use_container_width=True)

    if c.button("🆕 New invoice", use_container_width=True):
        if _new_invoice():
            st.rerun()
