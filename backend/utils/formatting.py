from backend.tax_engine.gst_calculator import display_round


# ── Indian digit grouping (12,34,567) ───────────────────
def inr(x: float, symbol: str = "") -> str:
    n = display_round(x)
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
