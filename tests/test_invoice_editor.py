from datetime import date

import pytest
from pydantic import ValidationError

from backend.core.invoice_editor import InvoiceEditor, build_summary
from backend.models.invoice import DEFAULT_UNIT, NO_GSTIN, default_invoice
from backend.models.smart_fill import SmartFillActions, SmartFillPatch


def test_new_editor_uses_allocator(allocator):
    first = InvoiceEditor.new(allocator)
    second = InvoiceEditor.new(allocator)
    assert first.invoice.invoiceNumber == "INDY0187"
    assert second.invoice.invoiceNumber == "INDY0188"


def test_default_invoice():
    inv = default_invoice("INDY0187", today=date(2026, 4, 1))
    assert inv.date == "2026-04-01"
    assert inv.clientGstin == NO_GSTIN
    assert inv.taxRate == 18
    assert inv.isPaid is False
    assert [i.id for i in inv.items] == ["1"]
    assert inv.pdf_filename == "Invoice-INDY0187.pdf"


def test_add_item_appends_blank_line(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    item = editor.add_item()
    assert editor.invoice.items[-1] is item
    assert [i.id for i in editor.invoice.items][:2] == ["a", "b"]
    assert item.description == ""
    assert item.hsnCode == ""
    assert item.quantity == 1
    assert item.unit == DEFAULT_UNIT
    assert item.price == 0
    assert item.id not in ("a", "b")


def test_added_item_ids_are_unique(invoice):
    editor = InvoiceEditor(invoice)
    ids = {editor.add_item().id for _ in range(50)}
    assert len(ids) == 50


def test_update_item_keeps_order(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    assert editor.update_item("a", "description", "Blue widget") is True
    assert [i.id for i in editor.invoice.items] == ["a", "b"]
    assert editor.invoice.items[0].description == "Blue widget"


def test_unknown_item_id_is_a_noop(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    before = editor.invoice.model_dump()
    assert editor.update_item("zzz", "price", 5) is False
    assert editor.update_item_total("zzz", 500) is False
    assert editor.remove_item("zzz") is False
    assert editor.item_total("zzz") is None
    assert editor.invoice.model_dump() == before


def test_update_item_rejects_unknown_field(two_item_invoice):
    with pytest.raises(ValueError):
        InvoiceEditor(two_item_invoice).update_item("a", "colour", "red")


def test_bad_values_are_rejected_and_leave_invoice_intact(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    with pytest.raises(ValidationError):
        editor.update_item("a", "quantity", "abc")
    with pytest.raises(ValueError):
        editor.update_field("taxRate", "x")
    with pytest.raises(ValueError):
        editor.update_field("taxRate", -100)
    assert editor.invoice.items[0].quantity == 2
    assert editor.invoice.taxRate == 18
    assert editor.totals().grandTotal == pytest.approx(295.59)


def test_update_field(invoice):
    editor = InvoiceEditor(invoice)
    editor.update_field("clientName", "Ravi")
    assert editor.invoice.clientName == "Ravi"
    with pytest.raises(ValueError):
        editor.update_field("invoiceNumber", "X1")


def test_update_item_total_derives_price(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    assert editor.update_item_total("a", 590) is True
    # qty 2 at 18%: 590 / 1.18 / 2
    assert editor.invoice.items[0].price == pytest.approx(250)
    assert editor.item_total("a") == 590.0


def test_remove_item(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    assert editor.remove_item("a") is True
    assert [i.id for i in editor.invoice.items] == ["b"]


def test_load_replaces_invoice_wholesale(invoice, two_item_invoice):
    editor = InvoiceEditor(invoice)
    editor.load(two_item_invoice)
    assert editor.invoice.invoiceNumber == "INDY0200"
    editor.update_item("a", "price", 1)
    assert two_item_invoice.items[0].price == 100


def test_apply_patch(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    editor.apply_patch(SmartFillPatch(actions=SmartFillActions(markAsPaid=True)))
    assert editor.invoice.isPaid is True
    assert two_item_invoice.isPaid is False


def test_totals_and_breakdowns(two_item_invoice):
    editor = InvoiceEditor(two_item_invoice)
    totals = editor.totals()
    assert totals.totalTaxable == pytest.approx(250.5)
    assert totals.grandTotal == pytest.approx(295.59)
    assert sum(b.total for b in editor.breakdowns()) == pytest.approx(totals.grandTotal)


def test_summary_for_default_invoice(invoice):
    summary = build_summary(invoice)
    assert summary["invoiceNumber"] == "INDY0187"
    assert summary["halfRate"] == 9
    assert summary["display"] == {
        "totalTaxable": 21186,
        "totalHalfA": 1907,
        "totalHalfB": 1907,
        "grandTotal": 25000,
    }
    assert summary["words"]["grandTotal"] == "Twenty Five Thousand Only"
    assert summary["words"]["halfA"] == "One Thousand Nine Hundred and Seven Only"
    line = summary["lines"][0]
    assert line["id"] == "1"
    assert line["itemTotal"] == 25000.0
    assert line["display"]["price"] == 21186


def test_summary_with_negative_total_leaves_words_blank(two_item_invoice):
    two_item_invoice.items[0].price = -1000
    summary = build_summary(two_item_invoice)
    assert summary["words"]["grandTotal"] == ""
    assert summary["display"]["grandTotal"] < 0
