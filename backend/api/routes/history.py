from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from backend.api.deps import get_history_store
from backend.database.history_store import HistoryStore
from backend.models.invoice import InvoiceData
from backend.tax_engine.gst_calculator import aggregate, display_round

router = APIRouter(prefix="/api/history", tags=["history"])


def _entry(inv: InvoiceData) -> Dict[str, Any]:
    total = aggregate(inv.items, inv.taxRate).grandTotal
    return {
        "invoice": inv.model_dump(),
        "status": "PAID" if inv.isPaid else "PENDING",
        "total": display_round(total),
    }


@router.get("")
async def list_history(latest_first: bool = False, history: HistoryStore = Depends(get_history_store)):
    records = history.list_all()
    if latest_first:
        records = list(reversed(records))
    return {"items": [_entry(r) for r in records], "total": len(records)}


@router.get("/{invoice_number}")
async def get_invoice(invoice_number: str, history: HistoryStore = Depends(get_history_store)):
    inv = history.get(invoice_number)
    if inv is None:
        raise HTTPException(status_code=404, detail=f"Invoice {invoice_number} not in history")
    return _entry(inv)


@router.put("")
async def save_invoice(invoice: InvoiceData, history: HistoryStore = Depends(get_history_store)):
    history.upsert(invoice)
    return {"ok": True, "invoiceNumber": invoice.invoiceNumber}


@router.delete("/{invoice_number}")
async def delete_invoice(invoice_number: str, history: HistoryStore = Depends(get_history_store)):
    removed = history.remove(invoice_number)
    return {"ok": True, "removed": removed}
