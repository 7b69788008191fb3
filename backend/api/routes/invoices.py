"""
SmartInvoice — editor API routes
New invoice numbers, live totals, reverse tax calculation, field and line
item edits, smart fill, simulated payment and PDF download.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, Field

from backend.agents.smart_fill_agent import SmartFillAgent, SmartFillBusyError, SmartFillConfigError, SmartFillError
from backend.api.deps import get_allocator, get_history_store, get_smart_fill_agent
from backend.core.invoice_editor import InvoiceEditor, build_summary
from backend.core.payment import PaymentFlow, PaymentStateError, simulate_payment
from backend.core.smart_fill import apply_smart_fill_patch
from backend.database.history_store import HistoryStore
from backend.models.invoice import InvoiceData
from backend.services.invoice_numbers import InvoiceNumberAllocator
from backend.tax_engine.gst_calculator import derive_rate_from_inclusive_total, round_to_2, tax_inclusive_total
from backend.utils.pdf_generator import invoice_pdf_bytes

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


class DeriveRateRequest(BaseModel):
    total: float
    quantity: Optional[float] = 1
    taxRate: Optional[float] = Field(default=None, gt=-100)


class FieldEditRequest(BaseModel):
    invoice: InvoiceData
    field: str
    value: Any = None


class ItemTotalRequest(BaseModel):
    invoice: InvoiceData
    total: float


class SmartFillRequest(BaseModel):
    invoice: InvoiceData
    text: str


class PayRequest(BaseModel):
    invoice: InvoiceData
    delaySeconds: Optional[float] = None


@router.post("/new")
async def new_invoice(allocator: InvoiceNumberAllocator = Depends(get_allocator)) -> Dict[str, Any]:
    editor = InvoiceEditor.new(allocator)
    logger.info("New invoice {}", editor.invoice.invoiceNumber)
    return editor.invoice.model_dump()


@router.post("/totals")
async def invoice_totals(invoice: InvoiceData) -> Dict[str, Any]:
    """Per-line breakdowns, aggregate totals (raw + rounded) and amounts in words."""
    return build_summary(invoice)


@router.post("/items")
async def add_item(invoice: InvoiceData) -> Dict[str, Any]:
    editor = InvoiceEditor(invoice)
    editor.add_item()
    return editor.invoice.model_dump()


@router.post("/items/derive-rate")
async def derive_rate(req: DeriveRateRequest) -> Dict[str, Any]:
    price = derive_rate_from_inclusive_total(req.total, req.quantity, req.taxRate)
    return {
        "price": price,
        "total": round_to_2(tax_inclusive_total(price, req.quantity or 1, req.taxRate)),
    }


# ── Editing ─────────────────────────────────────────────


def _edited(editor: InvoiceEditor, found: bool = True) -> Dict[str, Any]:
    return {"invoice": editor.invoice.model_dump(), "found": found}


@router.post("/fields")
async def edit_field(req: FieldEditRequest) -> Dict[str, Any]:
    editor = InvoiceEditor(req.invoice)
    try:
        editor.update_field(req.field, req.value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _edited(editor)


@router.post("/items/{item_id}")
async def edit_item(item_id: str, req: FieldEditRequest) -> Dict[str, Any]:
    editor = InvoiceEditor(req.invoice)
    try:
        found = editor.update_item(item_id, req.field, req.value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _edited(editor, found)


@router.post("/items/{item_id}/total")
async def edit_item_total(item_id: str, req: ItemTotalRequest) -> Dict[str, Any]:
    editor = InvoiceEditor(req.invoice)
    return _edited(editor, editor.update_item_total(item_id, req.total))


@router.post("/items/{item_id}/remove")
async def remove_item(item_id: str, invoice: InvoiceData) -> Dict[str, Any]:
    editor = InvoiceEditor(invoice)
    return _edited(editor, editor.remove_item(item_id))


@router.post("/smart-fill")
def smart_fill(req: SmartFillRequest, agent: SmartFillAgent = Depends(get_smart_fill_agent)) -> Dict[str, Any]:
    try:
        patch = agent.extract(req.text)
    except SmartFillConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SmartFillBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SmartFillError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if patch is None:
        return {"invoice": req.invoice.model_dump(), "applied": False}
    updated = apply_smart_fill_patch(req.invoice, patch)
    return {"invoice": updated.model_dump(), "applied": True}


@router.post("/pay")
async def pay(req: PayRequest, history: HistoryStore = Depends(get_history_store)) -> Dict[str, Any]:
    flow = PaymentFlow(history, req.invoice)
    try:
        paid = await simulate_payment(flow, delay_s=req.delaySeconds)
    except PaymentStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"invoice": paid.model_dump(), "state": flow.state.value}


@router.post("/pdf")
def download_pdf(invoice: InvoiceData, history: HistoryStore = Depends(get_history_store)) -> Response:
    try:
        pdf_bytes = invoice_pdf_bytes(invoice)
    except Exception as e:
        logger.exception("PDF generation failed invoice={}", invoice.invoiceNumber)
        raise HTTPException(status_code=500, detail=f"Could not generate PDF: {e}")
    history.upsert(invoice)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={invoice.pdf_filename}"},
    )
