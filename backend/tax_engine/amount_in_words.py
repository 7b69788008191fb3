"""
Indian-numbering amount in words, as printed on tax invoices:
12,34,567 -> "Twelve Lakh Thirty Four Thousand Five Hundred and Sixty Seven Only".
"""
from __future__ import annotations

from typing import List

from backend.tax_engine.gst_calculator import display_round

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# (digits, suffix) from most to least significant: 2,2,2,1,2
_GROUPS = [(2, "Crore"), (2, "Lakh"), (2, "Thousand"), (1, "Hundred"), (2, "")]

MAX_AMOUNT = 999_999_999


def _two_digits(n: int) -> str:
    if n < 20:
        return _ONES[n]
    tens, units = divmod(n, 10)
    return f"{_TENS[tens]} {_ONES[units]}".strip()


def to_words(amount: float) -> str:
    n = display_round(amount)
    if n < 0 or n > MAX_AMOUNT:
        raise ValueError(f"Amount out of range for words: {amount}")
    if n == 0:
        return "Zero Only"

    digits = f"{n:09d}"
    words: List[str] = []
    pos = 0
    for width, suffix in _GROUPS:
        value = int(digits[pos : pos + width])
        pos += width
        if not value:
            continue
        if not suffix:
            if words:
                words.append("and")
            words.append(_two_digits(value))
        else:
            words.append(f"{_two_digits(value)} {suffix}")
    return " ".join(words).strip() + " Only"
