from functools import lru_cache

from backend.agents.smart_fill_agent import SmartFillAgent
from backend.database.history_store import HistoryStore
from backend.database.kv_client import KeyValueStore, SqlKeyValueStore
from backend.services.invoice_numbers import InvoiceNumberAllocator


@lru_cache(maxsize=1)
def get_kv_store() -> KeyValueStore:
    return SqlKeyValueStore()


def get_history_store() -> HistoryStore:
    return HistoryStore(get_kv_store())


def get_allocator() -> InvoiceNumberAllocator:
    return InvoiceNumberAllocator(get_kv_store())


@lru_cache(maxsize=1)
def get_smart_fill_agent() -> SmartFillAgent:
    return SmartFillAgent()
