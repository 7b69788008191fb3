"""
SmartInvoice — Shared UI helpers
CSS, INR formatting and backend API helpers for all Streamlit pages.
"""
import os
import httpx

BACKEND_URL = os.getenv("SMARTINVOICE_BACKEND_URL", "http://localhost:8000")

# ── Indian Rupee formatter ──────────────────────────────
def inr(x: float, symbol: str = "₹") -> str:
    try:
        n = int(round(float(x)))
    except (TypeError, ValueError):
        return f"{symbol}{x}"
    s = str(abs(n))
    if len(s) <= 3:
        out = s
    else:
        out = s[-3:]
        s = s[:-3]
        while s:
            out = s[-2:] + "," + out
            s = s[:-2]
    return ("-" if n < 0 else "") + symbol + out


# ── API helpers ─────────────────────────────────────────
def api_get(path: str, params=None, timeout: int = 30):
    with httpx.Client(timeout=timeout) as c:
        return c.get(f"{BACKEND_URL}{path}", params=params)


def api_post(path: str, json_body=None, timeout: int = 60):
    with httpx.Client(timeout=timeout) as c:
        return c.post(f"{BACKEND_URL}{path}", json=json_body)


def api_delete(path: str, timeout: int = 30):
    with httpx.Client(timeout=timeout) as c:
        return c.delete(f"{BACKEND_URL}{path}")


def error_detail(res) -> str:
    try:
        return res.json().get("detail", res.text)
    except ValueError:
        return res.text


# ── Master CSS ──────────────────────────────────────────
SMARTINVOICE_CSS = """
<style>
:root {
    --bg-primary:   #F1F5F9;
    --bg-card:      #FFFFFF;
    --border:       #E2E8F0;
    --accent:       #2563EB;
    --green:        #15803D;
    --green-bg:     #DCFCE7;
    --yellow:       #A16207;
    --yellow-bg:    #FEF9C3;
    --text:         #0F172A;
    --text-muted:   #64748B;
    --radius:       12px;
}

.stApp,
div[data-testid="stAppViewContainer"] {
    background-color: var(--bg-primary) !important;
    color: var(--text);
}

.page-title {
    font-size: 28px;
    font-weight: 800;
    color: var(--text);
    margin-bottom: 4px;
}
.page-subtitle {
    color: var(--text-muted);
    font-size: 14px;
    margin-bottom: 20px;
}

.si-card {
    background: var(--bg-card);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    padding: 16px 20px;
    margin-bottom: 12px;
}
.si-invoice-no {
    font-family: "Fira Code", monospace;
    font-size: 12px;
    font-weight: 700;
    color: var(--text-muted);
    background: var(--bg-primary);
    padding: 2px 8px;
    border-radius: 6px;
}

.pill {
    display: inline-block;
    padding: 2px 10px;
    border-radius: 999px;
    font-size: 12px;
    font-weight: 700;
}
.pill-paid    { background: var(--green-bg);  color: var(--green); }
.pill-pending { background: var(--yellow-bg); color: var(--yellow); }

.words {
    font-size: 12px;
    color: var(--text-muted);
    text-transform: uppercase;
}
</style>
"""


def inject_css():
    """Inject the shared SmartInvoice CSS into the current Streamlit page."""
    import streamlit as st
    st.markdown(SMARTINVOICE_CSS, unsafe_allow_html=True)


def status_pill(is_paid: bool) -> str:
    return '<span class="pill pill-paid">PAID</span>' if is_paid else '<span class="pill pill-pending">PENDING</span>'
