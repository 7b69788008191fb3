from __future__ import annotations

from loguru import logger

from backend.models.invoice import CLIENT_FIELDS, DEFAULT_UNIT, NO_GSTIN, InvoiceData, LineItem, new_item_id
from backend.models.smart_fill import SmartFillPatch
from backend.tax_engine.gst_calculator import derive_rate_from_inclusive_total

# Rate assumed for spoken prices when the invoice has none set.
FALLBACK_TAX_RATE = 18


def apply_smart_fill_patch(current: InvoiceData, patch: SmartFillPatch) -> InvoiceData:
    """
    Merge an extraction result into a copy of the invoice.

    Order is fixed: clears, paid flag, client fields, appended items.
    Client fields only take truthy values; incoming prices are tax-inclusive.
    """
    data = current.model_copy(deep=True)
    actions = patch.actions

    if actions is not None:
        if actions.clearClient:
            for field in CLIENT_FIELDS:
                setattr(data, field, "")
            data.clientGstin = NO_GSTIN

        if actions.clearItems:
            data.items = []

        if actions.markAsUnpaid and actions.markAsPaid:
            logger.warning("Smart-fill patch for {} sets both markAsUnpaid and markAsPaid; paid wins", data.invoiceNumber)
        if actions.markAsUnpaid:
            data.isPaid = False
        if actions.markAsPaid:
            data.isPaid = True

    details = patch.clientDetails
    if details is not None:
        data.clientName = details.name or data.clientName
        data.clientAddress = details.address or data.clientAddress
        data.clientGstin = details.gstin or data.clientGstin
        data.clientPhone = details.phone or data.clientPhone

    if patch.items:
        rate = data.taxRate or FALLBACK_TAX_RATE
        data.items = data.items + [
            LineItem(
                id=new_item_id(),
                description=item.description,
                hsnCode="",
                quantity=item.quantity,
                unit=DEFAULT_UNIT,
                price=derive_rate_from_inclusive_total(item.price, item.quantity, rate),
            )
            for item in patch.items
        ]

    return data
