import json

import pytest

from backend.database.history_store import HISTORY_KEY, HistoryStore
from backend.database.kv_client import InMemoryKeyValueStore, SqlKeyValueStore
from backend.models.invoice import default_invoice
from backend.services.invoice_numbers import LAST_ID_KEY, InvoiceNumberAllocator


@pytest.fixture(params=["memory", "sqlite"])
def any_kv(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SqlKeyValueStore(f"sqlite:///{tmp_path / 'kv.db'}")


def test_kv_roundtrip(any_kv):
    assert any_kv.get("missing") is None
    any_kv.set("k", "v1")
    any_kv.set("k", "v2")
    assert any_kv.get("k") == "v2"
    any_kv.delete("k")
    assert any_kv.get("k") is None
    any_kv.delete("k")


def test_sqlite_store_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'nested' / 'kv.db'}"
    SqlKeyValueStore(url).set("k", "v")
    assert SqlKeyValueStore(url).get("k") == "v"


# ── History ─────────────────────────────────────────────


def test_upsert_replaces_in_place(any_kv):
    history = HistoryStore(any_kv)
    history.upsert(default_invoice("INDY0187"))
    history.upsert(default_invoice("INDY0188"))

    changed = default_invoice("INDY0187")
    changed.clientName = "Ravi Traders"
    changed.isPaid = True
    history.upsert(changed)

    records = history.list_all()
    assert [r.invoiceNumber for r in records] == ["INDY0187", "INDY0188"]
    assert records[0].clientName == "Ravi Traders"
    assert records[0].isPaid is True


def test_history_blob_layout(kv, history, invoice):
    history.upsert(invoice)
    stored = json.loads(kv.get(HISTORY_KEY))
    assert stored == [invoice.model_dump()]


def test_history_get_and_remove(history, invoice):
    assert history.get("INDY0187") is None
    history.upsert(invoice)
    assert history.get("INDY0187").model_dump() == invoice.model_dump()
    assert history.remove("INDY0999") is False
    assert history.remove("INDY0187") is True
    assert history.list_all() == []


def test_history_stores_a_copy(history, invoice):
    history.upsert(invoice)
    invoice.clientName = "changed later"
    assert history.get("INDY0187").clientName != "changed later"


def test_unparsable_blob_is_kept_aside_before_overwrite(kv, history, invoice):
    kv.set(HISTORY_KEY, "{not json")
    assert history.list_all() == []
    history.upsert(invoice)
    assert [r.invoiceNumber for r in history.list_all()] == ["INDY0187"]
    assert kv.get(history.unreadable_key) == "{not json"


def test_bad_record_does_not_take_good_ones_with_it(kv, history):
    good = [default_invoice(n).model_dump() for n in ("INDY0187", "INDY0188", "INDY0189")]
    broken = {**default_invoice("INDY0190").model_dump(), "taxRate": None}
    kv.set(HISTORY_KEY, json.dumps(good + [broken]))

    assert [r.invoiceNumber for r in history.list_all()] == ["INDY0187", "INDY0188", "INDY0189"]
    history.upsert(default_invoice("INDY0191"))
    assert [r.invoiceNumber for r in history.list_all()] == ["INDY0187", "INDY0188", "INDY0189", "INDY0191"]

    assert history.remove("INDY0188") is True
    stored = json.loads(kv.get(HISTORY_KEY))
    assert [e["invoiceNumber"] for e in stored] == ["INDY0187", "INDY0189", "INDY0190", "INDY0191"]
    assert stored[2]["taxRate"] is None


def test_bad_record_can_be_replaced(kv, history):
    broken = {**default_invoice("INDY0190").model_dump(), "items": "oops"}
    kv.set(HISTORY_KEY, json.dumps([broken]))
    assert history.get("INDY0190") is None
    history.upsert(default_invoice("INDY0190"))
    assert history.get("INDY0190").items[0].id == "1"
    assert len(json.loads(kv.get(HISTORY_KEY))) == 1


# ── Invoice numbers ─────────────────────────────────────


def test_numbering_sequence(kv, allocator):
    assert allocator.peek_last() is None
    assert allocator.next_number() == "INDY0187"
    assert kv.get(LAST_ID_KEY) == "INDY0187"
    assert allocator.next_number() == "INDY0188"


def test_numbering_resumes_from_persisted_id(kv):
    kv.set(LAST_ID_KEY, "INDY0999")
    allocator = InvoiceNumberAllocator(kv, prefix="INDY", start=187)
    assert allocator.next_number() == "INDY1000"
    assert allocator.next_number() == "INDY1001"


def test_numbering_survives_restart(tmp_path):
    url = f"sqlite:///{tmp_path / 'kv.db'}"
    assert InvoiceNumberAllocator(SqlKeyValueStore(url), prefix="INDY", start=187).next_number() == "INDY0187"
    assert InvoiceNumberAllocator(SqlKeyValueStore(url), prefix="INDY", start=187).next_number() == "INDY0188"


def test_numbering_ignores_id_without_digits(kv):
    kv.set(LAST_ID_KEY, "garbage")
    assert InvoiceNumberAllocator(kv, prefix="INDY", start=187).next_number() == "INDY0187"
