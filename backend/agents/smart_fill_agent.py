from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from loguru import logger

from backend.models.smart_fill import SmartFillPatch, parse_smart_fill_payload
from backend.utils.llm_client import LLMClient, LLMConfigError, LLMError


class SmartFillError(RuntimeError):
    """Extraction failed; the invoice must be left as it was."""


class SmartFillConfigError(SmartFillError):
    pass


class SmartFillBusyError(SmartFillError):
    pass


SMART_FILL_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "actions": {
            "type": "OBJECT",
            "properties": {
                "clearClient": {"type": "BOOLEAN", "description": "Set to true if user wants to clear/remove client details"},
                "clearItems": {"type": "BOOLEAN", "description": "Set to true if user wants to remove all line items"},
                "markAsUnpaid": {"type": "BOOLEAN", "description": "Set to true if user wants to remove payment status or mark as unpaid"},
                "markAsPaid": {"type": "BOOLEAN", "description": "Set to true if user wants to mark invoice as paid"},
            },
        },
        "clientDetails": {
            "type": "OBJECT",
            "properties": {
                "name": {"type": "STRING", "description": "Client or Customer Name"},
                "address": {"type": "STRING", "description": "Client Address"},
                "gstin": {"type": "STRING", "description": "Client GSTIN"},
                "phone": {"type": "STRING", "description": "Client Phone Number"},
            },
        },
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "description": {"type": "STRING", "description": "Description of the product or service"},
                    "quantity": {"type": "NUMBER", "description": "Quantity sold"},
                    "price": {"type": "NUMBER", "description": "The price or amount mentioned for the item"},
                },
                "required": ["description", "quantity", "price"],
            },
        },
    },
}


def build_prompt(text: str) -> str:
    return (
        "Extract invoice details or actions from this text.\n\n"
        "Capabilities:\n"
        "1. Extract Client/Customer details (Name, Address, GSTIN, Phone).\n"
        "2. Extract Line items (Description, Quantity, Price).\n"
        "3. Identify actions to clear data based on user intent:\n"
        '   - "Clear client", "Remove customer", "Reset client" -> actions.clearClient = true\n'
        '   - "Clear items", "Remove products", "Reset items" -> actions.clearItems = true\n'
        '   - "Remove payment", "Not paid", "Clear payment details", "Mark as unpaid" -> actions.markAsUnpaid = true\n'
        '   - "Mark as paid", "Paid" -> actions.markAsPaid = true\n\n'
        "If a price or quantity is implied, use reasonable defaults.\n\n"
        f'Text: "{text}"'
    )


class SmartFillAgent:
    """
    Free text -> validated SmartFillPatch.

    One request at a time: a second call while one is outstanding raises
    SmartFillBusyError instead of queueing.
    """

    def __init__(self, llm: Optional[LLMClient] = None) -> None:
        self.llm = llm or LLMClient()
        self._lock = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def extract(self, text: str) -> Optional[SmartFillPatch]:
        if not text or not text.strip():
            return None
        if not self.llm.configured:
            raise SmartFillConfigError("Smart fill is not configured: GOOGLE_API_KEY is missing.")
        if not self._lock.acquire(blocking=False):
            raise SmartFillBusyError("A smart-fill request is already running.")
        try:
            payload = self.llm.ask_json(prompt=build_prompt(text.strip()), response_schema=SMART_FILL_SCHEMA)
            patch = parse_smart_fill_payload(payload)
        except LLMConfigError as e:
            raise SmartFillConfigError(str(e)) from e
        except (LLMError, ValueError) as e:
            logger.exception("Smart fill failed chars={}", len(text))
            raise SmartFillError("Failed to reach the AI service. Please check your connection and try again.") from e
        finally:
            self._lock.release()

        logger.info(
            "Smart fill parsed actions={} client={} items={}",
            patch.actions is not None,
            patch.clientDetails is not None,
            len(patch.items or []),
        )
        return patch
