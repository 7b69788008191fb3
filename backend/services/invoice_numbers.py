import re
from typing import Optional

from loguru import logger

from backend.config import settings
from backend.database.kv_client import KeyValueStore

LAST_ID_KEY = "smartinvoice_last_id"

_DIGITS_RE = re.compile(r"\d+")


class InvoiceNumberAllocator:
    """
    Sequential invoice numbers such as INDY0187.

    The last issued id is persisted; the next one resumes from its digits + 1.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        prefix: Optional[str] = None,
        start: Optional[int] = None,
        width: int = 4,
    ) -> None:
        self.kv = kv
        self.prefix = settings.INVOICE_PREFIX if prefix is None else prefix
        self.start = settings.INVOICE_START if start is None else start
        self.width = width

    def peek_last(self) -> Optional[str]:
        return self.kv.get(LAST_ID_KEY)

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"

    def next_number(self) -> str:
        next_num = self.start
        last = self.peek_last()
        if last:
            match = _DIGITS_RE.search(last)
            if match:
                next_num = int(match.group(0)) + 1
            else:
                logger.warning("Stored last invoice id has no digits: {}", last)
        new_id = self.format(next_num)
        self.kv.set(LAST_ID_KEY, new_id)
        return new_id
