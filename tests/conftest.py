import json
import os
import tempfile

# settings are read once at import time; pin them before backend is imported
_TMP = tempfile.mkdtemp(prefix="smartinvoice-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'default.db')}"
os.environ["GOOGLE_API_KEY"] = ""
os.environ["API_KEY"] = ""
os.environ["VITE_API_KEY"] = ""
os.environ["PAYMENT_DELAY_S"] = "0"

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.agents.smart_fill_agent import SmartFillAgent
from backend.api import deps
from backend.database.history_store import HistoryStore
from backend.database.kv_client import InMemoryKeyValueStore
from backend.main import app
from backend.models.invoice import InvoiceData, LineItem, default_invoice
from backend.services.invoice_numbers import InvoiceNumberAllocator
from backend.utils.llm_client import LLMClient


def gemini_body(payload) -> dict:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_llm(handler, api_key: str = "test-key") -> LLMClient:
    return LLMClient(api_key=api_key, transport=httpx.MockTransport(handler), backoff_s=0)


def gemini_replying(payload):
    """MockTransport handler that always answers with the given JSON payload."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=gemini_body(payload))

    handler.calls = calls
    return handler


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def history(kv):
    return HistoryStore(kv)


@pytest.fixture
def allocator(kv):
    return InvoiceNumberAllocator(kv, prefix="INDY", start=187)


@pytest.fixture
def invoice():
    return default_invoice("INDY0187")


@pytest.fixture
def two_item_invoice():
    return InvoiceData(
        invoiceNumber="INDY0200",
        clientName="Acme Traders",
        clientPhone="98450 00000",
        items=[
            LineItem(id="a", description="Widget", quantity=2, price=100),
            LineItem(id="b", description="Gadget", quantity=1, price=50.5),
        ],
        taxRate=18,
    )


@pytest.fixture
def client(kv):
    agent_holder = {"agent": SmartFillAgent(llm=LLMClient(api_key=""))}

    app.dependency_overrides[deps.get_kv_store] = lambda: kv
    app.dependency_overrides[deps.get_history_store] = lambda: HistoryStore(kv)
    app.dependency_overrides[deps.get_allocator] = lambda: InvoiceNumberAllocator(kv, prefix="INDY", start=187)
    app.dependency_overrides[deps.get_smart_fill_agent] = lambda: agent_holder["agent"]

    test_client = TestClient(app)
    test_client.agent_holder = agent_holder
    yield test_client
    app.dependency_overrides.clear()
