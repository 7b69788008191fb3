from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from loguru import logger

from backend.config import settings
from backend.database.history_store import HistoryStore
from backend.models.invoice import InvoiceData


class PaymentState(str, Enum):
    DRAFTING = "DRAFTING"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"


class PaymentStateError(RuntimeError):
    pass


class PaymentFlow:
    """
    DRAFTING --submit_payment--> AWAITING_PAYMENT --payment_confirmed--> PAID
                                 AWAITING_PAYMENT --payment_cancelled--> DRAFTING

    Confirming marks the invoice paid and saves it to history.
    """

    def __init__(self, history: HistoryStore, invoice: InvoiceData) -> None:
        self.history = history
        self.invoice = invoice
        self.state = PaymentState.PAID if invoice.isPaid else PaymentState.DRAFTING

    def _require(self, expected: PaymentState, action: str) -> None:
        if self.state is not expected:
            raise PaymentStateError(f"Cannot {action} while {self.state.value} (invoice {self.invoice.invoiceNumber})")

    def submit_payment(self) -> None:
        self._require(PaymentState.DRAFTING, "submit payment")
        self.state = PaymentState.AWAITING_PAYMENT
        logger.info("Payment submitted invoice={}", self.invoice.invoiceNumber)

    def payment_confirmed(self) -> InvoiceData:
        self._require(PaymentState.AWAITING_PAYMENT, "confirm payment")
        paid = self.invoice.model_copy(update={"isPaid": True}, deep=True)
        self.history.upsert(paid)
        self.invoice = paid
        self.state = PaymentState.PAID
        logger.info("Payment confirmed invoice={}", paid.invoiceNumber)
        return paid

    def payment_cancelled(self) -> None:
        self._require(PaymentState.AWAITING_PAYMENT, "cancel payment")
        self.state = PaymentState.DRAFTING
        logger.info("Payment cancelled invoice={}", self.invoice.invoiceNumber)


async def simulate_payment(flow: PaymentFlow, delay_s: Optional[float] = None) -> InvoiceData:
    """Stand-in for a card gateway: submit, wait, confirm."""
    flow.submit_payment()
    await asyncio.sleep(settings.PAYMENT_DELAY_S if delay_s is None else delay_s)
    return flow.payment_confirmed()
