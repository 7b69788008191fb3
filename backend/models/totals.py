from pydantic import BaseModel


class LineBreakdown(BaseModel):
    taxableValue: float
    halfA: float  # CGST
    halfB: float  # SGST
    total: float


class InvoiceTotals(BaseModel):
    totalTaxable: float = 0.0
    totalHalfA: float = 0.0
    totalHalfB: float = 0.0
    grandTotal: float = 0.0
