from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from backend.database.kv_client import KeyValueStore
from backend.models.invoice import InvoiceData

HISTORY_KEY = "smartinvoice_history"
# an unparsable blob is parked here before the first write replaces it
UNREADABLE_SUFFIX = "_unreadable"


class HistoryBlobError(ValueError):
    """The stored history is not a JSON array."""


class HistoryStore:
    """
    Saved invoices, one record per invoiceNumber, kept in insertion order.

    The whole history is one JSON array under HISTORY_KEY, field names as in
    InvoiceData, so it survives a serialize/deserialize cycle unchanged.
    Records that fail validation are skipped when reading but stay in the
    blob untouched; writes only replace or drop entries by invoiceNumber.
    """

    def __init__(self, kv: KeyValueStore, key: str = HISTORY_KEY) -> None:
        self.kv = kv
        self.key = key

    @property
    def unreadable_key(self) -> str:
        return f"{self.key}{UNREADABLE_SUFFIX}"

    def _entries(self) -> List[Any]:
        raw = self.kv.get(self.key)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except ValueError as e:
            raise HistoryBlobError(f"History blob is not JSON: {e}") from e
        if not isinstance(entries, list):
            raise HistoryBlobError(f"History blob is a {type(entries).__name__}, expected a list")
        return entries

    def _entries_for_write(self) -> List[Any]:
        try:
            return self._entries()
        except HistoryBlobError as e:
            self.kv.set(self.unreadable_key, self.kv.get(self.key) or "")
            logger.warning("History blob unreadable; moved to key={} err={}", self.unreadable_key, str(e))
            return []

    @staticmethod
    def _number(entry: Any) -> Optional[str]:
        return entry.get("invoiceNumber") if isinstance(entry, dict) else None

    @staticmethod
    def _parse(entry: Any, idx: int) -> Optional[InvoiceData]:
        try:
            return InvoiceData.model_validate(entry)
        except ValidationError as e:
            logger.warning("Skipping unreadable history record position={} err={}", idx, str(e))
            return None

    def _save(self, entries: List[Any]) -> None:
        self.kv.set(self.key, json.dumps(entries))

    def list_all(self) -> List[InvoiceData]:
        try:
            entries = self._entries()
        except HistoryBlobError as e:
            logger.warning("History blob unreadable; listing nothing. err={}", str(e))
            return []
        return [r for r in (self._parse(e, i) for i, e in enumerate(entries)) if r is not None]

    def get(self, invoice_number: str) -> Optional[InvoiceData]:
        return next((r for r in self.list_all() if r.invoiceNumber == invoice_number), None)

    def upsert(self, invoice: InvoiceData) -> None:
        entries = self._entries_for_write()
        record: Dict[str, Any] = invoice.model_dump()
        for idx, entry in enumerate(entries):
            if self._number(entry) == invoice.invoiceNumber:
                entries[idx] = record
                logger.info("History updated invoice={} position={}", invoice.invoiceNumber, idx)
                break
        else:
            entries.append(record)
            logger.info("History added invoice={} count={}", invoice.invoiceNumber, len(entries))
        self._save(entries)

    def remove(self, invoice_number: str) -> bool:
        entries = self._entries_for_write()
        kept = [e for e in entries if self._number(e) != invoice_number]
        if len(kept) == len(entries):
            return False
        self._save(kept)
        logger.info("History removed invoice={}", invoice_number)
        return True
