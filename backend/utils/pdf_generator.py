from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from backend.core.invoice_editor import build_summary
from backend.models.invoice import InvoiceData
from backend.utils.formatting import inr

DECLARATION = (
    "Certified that particulars given above are true and correct and the amount indicated above "
    "represents the price actually charged and there is no flow of additional consideration directly "
    "or indirectly from the buyer."
)

# (header, width mm, align)
_COLUMNS: Sequence[Tuple[str, float, str]] = (
    ("#", 7, "C"),
    ("Description", 44, "L"),
    ("HSN", 13, "C"),
    ("Qty", 10, "C"),
    ("Unit", 10, "C"),
    ("Rate", 16, "R"),
    ("Taxable", 18, "R"),
    ("CGST %", 11, "R"),
    ("CGST", 15, "R"),
    ("SGST %", 11, "R"),
    ("SGST", 15, "R"),
    ("Total", 20, "R"),
)


def _latin1(text: Any) -> str:
    # core fonts only cover latin-1
    return str(text if text is not None else "").encode("latin-1", "replace").decode("latin-1")


def _qty(q: float) -> str:
    return str(int(q)) if float(q).is_integer() else f"{q:g}"


class InvoicePDF(FPDF):
    def __init__(self, invoice: InvoiceData) -> None:
        super().__init__(orientation="P", unit="mm", format="A4")
        self.invoice = invoice

    def header(self) -> None:
        if self.invoice.isPaid:
            self.set_font("Helvetica", "B", 96)
            self.set_text_color(205, 235, 210)
            with self.rotation(angle=15, x=105, y=150):
                self.text(48, 165, "PAID")
            self.set_text_color(0, 0, 0)
        self.set_font("Helvetica", "B", 14)
        self.cell(0, 9, "TAX INVOICE", border=1, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def footer(self) -> None:
        self.set_y(-12)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(110, 110, 110)
        self.cell(0, 6, "This is a computer generated invoice.", align="C")
        self.set_text_color(0, 0, 0)

    def fit(self, text: str, width: float) -> str:
        """Truncate text with an ellipsis so it fits a cell of the given width."""
        text = _latin1(text).replace("\n", " ")
        if self.get_string_width(text) <= width - 2:
            return text
        while text and self.get_string_width(text + "...") > width - 2:
            text = text[:-1]
        return text + "..."

    def line_out(self, h: float, text: str, style: str = "", size: int = 9) -> None:
        self.set_font("Helvetica", style, size)
        self.multi_cell(0, h, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _parties(pdf: InvoicePDF, inv: InvoiceData) -> None:
    pdf.ln(2)
    pdf.line_out(5, inv.senderName, style="B", size=11)
    pdf.line_out(4.5, inv.senderAddress)
    pdf.line_out(4.5, f"GSTIN: {inv.senderGstin}   PAN: {inv.senderPan}   CIN: {inv.senderCin}")
    if inv.senderEmail:
        pdf.line_out(4.5, f"Email: {inv.senderEmail}")
    pdf.ln(2)

    pdf.set_font("Helvetica", "", 9)
    meta = [
        ("Invoice No", inv.invoiceNumber),
        ("Invoice Date", inv.date),
        ("Due Date", inv.dueDate or "-"),
        ("Place of Delivery", inv.deliveryPlace or "-"),
    ]
    for i, (label, value) in enumerate(meta):
        pdf.cell(35, 5, _latin1(f"{label}:"), border="LTB")
        pdf.cell(60, 5, pdf.fit(value, 60), border="TBR")
        if i % 2:
            pdf.ln(5)
    pdf.ln(2)

    pdf.line_out(5, "Bill To", style="B", size=10)
    pdf.line_out(4.5, inv.clientName or "-", style="B")
    if inv.clientAddress:
        pdf.line_out(4.5, inv.clientAddress)
    contact = "   ".join(v for v in (inv.clientPhone and f"Phone: {inv.clientPhone}", inv.clientEmail and f"Email: {inv.clientEmail}") if v)
    if contact:
        pdf.line_out(4.5, contact)
    pdf.line_out(4.5, f"GSTIN: {inv.clientGstin or '-'}   State Code: {inv.clientStateCode or '-'}")
    pdf.ln(3)


def _items_table(pdf: InvoicePDF, inv: InvoiceData, summary: Dict[str, Any]) -> None:
    half_rate = f"{summary['halfRate']:.2f}"
    pdf.set_font("Helvetica", "B", 7.5)
    pdf.set_fill_color(235, 235, 235)
    for title, width, _ in _COLUMNS:
        pdf.cell(width, 7, title, border=1, align="C", fill=True)
    pdf.ln(7)

    pdf.set_font("Helvetica", "", 7.5)
    for idx, (item, line) in enumerate(zip(inv.items, summary["lines"]), start=1):
        shown = line["display"]
        values: List[str] = [
            str(idx),
            item.description,
            item.hsnCode,
            _qty(item.quantity),
            item.unit,
            inr(shown["price"]),
            inr(shown["taxableValue"]),
            half_rate,
            inr(shown["halfA"]),
            half_rate,
            inr(shown["halfB"]),
            inr(shown["total"]),
        ]
        for (_, width, align), value in zip(_COLUMNS, values):
            pdf.cell(width, 6, pdf.fit(value, width), border=1, align=align)
        pdf.ln(6)


def _totals(pdf: InvoicePDF, inv: InvoiceData, summary: Dict[str, Any]) -> None:
    shown = summary["display"]
    half_rate = summary["halfRate"]
    rows = [
        ("Total Taxable Value", shown["totalTaxable"]),
        (f"CGST @ {half_rate:g}%", shown["totalHalfA"]),
        (f"SGST @ {half_rate:g}%", shown["totalHalfB"]),
        ("Total Invoice Value", shown["grandTotal"]),
    ]
    pdf.ln(2)
    for i, (label, value) in enumerate(rows):
        pdf.set_font("Helvetica", "B" if i == len(rows) - 1 else "", 9)
        pdf.cell(140, 6, "")
        pdf.cell(30, 6, _latin1(label), border=1)
        pdf.cell(20, 6, inr(value), border=1, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    words = summary["words"]
    pdf.ln(3)
    pdf.line_out(5, f"CGST (in words): {words['halfA']}")
    pdf.line_out(5, f"SGST (in words): {words['halfB']}")
    pdf.line_out(5, f"Invoice Value in words: {words['grandTotal'].upper()}", style="B")


def _closing(pdf: InvoicePDF, inv: InvoiceData) -> None:
    if inv.notes:
        pdf.ln(2)
        pdf.line_out(5, "Notes", style="B")
        pdf.line_out(4.5, inv.notes)
    pdf.ln(3)
    pdf.line_out(4, DECLARATION, size=7.5)
    pdf.ln(8)
    pdf.set_font("Helvetica", "B", 9)
    pdf.cell(0, 5, _latin1(f"For {inv.senderName}"), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(10)
    pdf.set_font("Helvetica", "", 9)
    pdf.cell(0, 5, "Authorised Signatory", align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def build_invoice_pdf(invoice: InvoiceData) -> InvoicePDF:
    """
    Lay out the printable tax invoice:
    - sender / invoice meta / bill-to blocks
    - item table with CGST + SGST columns
    - rounded totals and amounts in words
    - declaration and signature block
    """
    summary = build_summary(invoice)
    pdf = InvoicePDF(invoice)
    pdf.set_title(f"Invoice-{invoice.invoiceNumber}")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    _parties(pdf, invoice)
    _items_table(pdf, invoice, summary)
    _totals(pdf, invoice, summary)
    _closing(pdf, invoice)
    return pdf


def invoice_pdf_bytes(invoice: InvoiceData) -> bytes:
    return bytes(build_invoice_pdf(invoice).output())


def generate_invoice_pdf(output_dir: str, invoice: InvoiceData) -> str:
    """Write Invoice-<number>.pdf into output_dir and return its path."""
    out = Path(output_dir) / invoice.pdf_filename
    out.parent.mkdir(parents=True, exist_ok=True)
    build_invoice_pdf(invoice).output(str(out))
    return str(out)
