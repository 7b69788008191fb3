from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger

from backend.models.invoice import DEFAULT_UNIT, InvoiceData, LineItem, default_invoice, new_item_id
from backend.models.smart_fill import SmartFillPatch
from backend.models.totals import InvoiceTotals, LineBreakdown
from backend.core.smart_fill import apply_smart_fill_patch
from backend.services.invoice_numbers import InvoiceNumberAllocator
from backend.tax_engine.amount_in_words import to_words
from backend.tax_engine.gst_calculator import (
    aggregate,
    derive_rate_from_inclusive_total,
    display_round,
    item_total,
    line_item_breakdown,
)

_ITEM_FIELDS = set(LineItem.model_fields) - {"id"}
_INVOICE_FIELDS = set(InvoiceData.model_fields) - {"items", "invoiceNumber"}


class InvoiceEditor:
    """
    Owns the invoice being edited in one session.

    Item operations that reference an unknown id are no-ops and return False.
    Values are validated on assignment; a bad value raises ValidationError
    (a ValueError) and leaves the invoice unchanged.
    """

    def __init__(self, invoice: InvoiceData) -> None:
        self.invoice = invoice

    @classmethod
    def new(cls, allocator: InvoiceNumberAllocator) -> "InvoiceEditor":
        return cls(default_invoice(allocator.next_number()))

    def load(self, invoice: InvoiceData) -> None:
        self.invoice = invoice.model_copy(deep=True)

    # ── Header fields ───────────────────────────────────

    def update_field(self, field: str, value: Any) -> None:
        if field not in _INVOICE_FIELDS:
            raise ValueError(f"Unknown invoice field: {field}")
        setattr(self.invoice, field, value)

    # ── Line items ──────────────────────────────────────

    def _find(self, item_id: str) -> Optional[LineItem]:
        return next((i for i in self.invoice.items if i.id == item_id), None)

    def add_item(self) -> LineItem:
        item = LineItem(id=new_item_id(), description="", hsnCode="", quantity=1, unit=DEFAULT_UNIT, price=0)
        self.invoice.items.append(item)
        return item

    def update_item(self, item_id: str, field: str, value: Any) -> bool:
        if field not in _ITEM_FIELDS:
            raise ValueError(f"Unknown line item field: {field}")
        item = self._find(item_id)
        if item is None:
            logger.debug("update_item: no item id={} on {}", item_id, self.invoice.invoiceNumber)
            return False
        setattr(item, field, value)
        return True

    def update_item_total(self, item_id: str, inclusive_total: float) -> bool:
        item = self._find(item_id)
        if item is None:
            return False
        item.price = derive_rate_from_inclusive_total(inclusive_total, item.quantity, self.invoice.taxRate)
        return True

    def remove_item(self, item_id: str) -> bool:
        before = len(self.invoice.items)
        self.invoice.items = [i for i in self.invoice.items if i.id != item_id]
        return len(self.invoice.items) != before

    # ── Smart fill ──────────────────────────────────────

    def apply_patch(self, patch: SmartFillPatch) -> None:
        self.invoice = apply_smart_fill_patch(self.invoice, patch)

    # ── Derived values ──────────────────────────────────

    def breakdowns(self) -> List[LineBreakdown]:
        return [line_item_breakdown(i, self.invoice.taxRate) for i in self.invoice.items]

    def totals(self) -> InvoiceTotals:
        return aggregate(self.invoice.items, self.invoice.taxRate)

    def item_total(self, item_id: str) -> Optional[float]:
        item = self._find(item_id)
        return item_total(item, self.invoice.taxRate) if item else None

    def summary(self) -> Dict[str, Any]:
        return build_summary(self.invoice)


def build_summary(invoice: InvoiceData) -> Dict[str, Any]:
    """Everything the printable layout needs: raw, rounded and spoken totals."""
    totals = aggregate(invoice.items, invoice.taxRate)
    half_rate = (invoice.taxRate or 0) / 2
    lines = []
    for item in invoice.items:
        b = line_item_breakdown(item, invoice.taxRate)
        lines.append(
            {
                "id": item.id,
                **b.model_dump(),
                "itemTotal": item_total(item, invoice.taxRate),
                "display": {
                    "price": display_round(item.price),
                    "taxableValue": display_round(b.taxableValue),
                    "halfA": display_round(b.halfA),
                    "halfB": display_round(b.halfB),
                    "total": display_round(b.total),
                },
            }
        )
    return {
        "invoiceNumber": invoice.invoiceNumber,
        "halfRate": half_rate,
        "lines": lines,
        "totals": totals.model_dump(),
        "display": {k: display_round(v) for k, v in totals.model_dump().items()},
        "words": {
            "halfA": _words(totals.totalHalfA),
            "halfB": _words(totals.totalHalfB),
            "grandTotal": _words(totals.grandTotal),
        },
    }


def _words(amount: float) -> str:
    try:
        return to_words(amount)
    except ValueError:
        logger.warning("Amount {} cannot be spelled out; leaving words blank", amount)
        return ""
