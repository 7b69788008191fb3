from __future__ import annotations

import random
import string
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.config import settings


_ID_ALPHABET = string.ascii_lowercase + string.digits

# Unit label used for every new or smart-filled line.
DEFAULT_UNIT = "No"
# Placeholder GSTIN for unregistered clients.
NO_GSTIN = "NA"


def new_item_id() -> str:
    return "".join(random.choices(_ID_ALPHABET, k=9))


class LineItem(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_item_id)
    description: str = ""
    hsnCode: str = ""
    quantity: float = 1
    unit: str = DEFAULT_UNIT
    price: float = 0  # tax-exclusive unit rate


class InvoiceData(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    invoiceNumber: str
    date: str = ""
    dueDate: str = ""

    senderName: str = ""
    senderEmail: str = ""
    senderAddress: str = ""
    senderGstin: str = ""
    senderPan: str = ""
    senderCin: str = ""

    clientName: str = ""
    clientEmail: str = ""
    clientAddress: str = ""
    clientGstin: str = NO_GSTIN
    clientStateCode: str = ""
    clientPhone: str = ""

    deliveryPlace: str = ""

    items: List[LineItem] = Field(default_factory=list)
    taxRate: float = Field(default=18, gt=-100)  # combined rate, split into CGST + SGST halves
    notes: str = ""
    isPaid: bool = False

    @property
    def pdf_filename(self) -> str:
        return f"Invoice-{self.invoiceNumber}.pdf"


CLIENT_FIELDS = ("clientName", "clientEmail", "clientAddress", "clientGstin", "clientStateCode", "clientPhone")


def default_invoice(invoice_number: str, today: Optional[date] = None) -> InvoiceData:
    """Fresh invoice pre-filled with the issuing company's details and one sample line."""
    today = today or date.today()
    return InvoiceData(
        invoiceNumber=invoice_number,
        date=today.isoformat(),
        dueDate="",
        senderName="Incanto Dynamics Pvt. Ltd.",
        senderAddress="No.373, 2nd Stage, 2nd Phase,\nWOC Road Rajajinagar\nBengaluru - 560 086.",
        senderEmail="enquiry@digitalmaven.co.in",
        senderGstin="29AAHCI4821K1Z9",
        senderPan="AAHCI4821K",
        senderCin="U62099KA2024PTC183531",
        clientName="Bhoomika",
        clientAddress="Bengaluru, Karnataka",
        clientEmail="",
        clientPhone="91- 98867 68322",
        clientGstin=NO_GSTIN,
        clientStateCode="29",
        deliveryPlace="NA",
        items=[
            LineItem(
                id="1",
                description="Advanced Certification in AI Powered Data Analytics",
                hsnCode="9992",
                quantity=1,
                unit=DEFAULT_UNIT,
                price=21186.4407,
            )
        ],
        taxRate=settings.DEFAULT_TAX_RATE,
        notes="",
        isPaid=False,
    )
