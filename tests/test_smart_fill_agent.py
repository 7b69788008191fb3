import threading

import httpx
import pytest

from backend.agents.smart_fill_agent import (
    SMART_FILL_SCHEMA,
    SmartFillAgent,
    SmartFillBusyError,
    SmartFillConfigError,
    SmartFillError,
    build_prompt,
)
from conftest import gemini_replying, make_llm


def test_extract_returns_validated_patch():
    handler = gemini_replying(
        {
            "actions": {"markAsPaid": True, "unknown": 1},
            "clientDetails": {"name": "Ravi Traders"},
            "items": [{"description": "Laptop", "quantity": 2, "price": 118000}],
        }
    )
    agent = SmartFillAgent(llm=make_llm(handler))
    patch = agent.extract("Bill Ravi Traders for 2 laptops, 1,18,000 total, paid")
    assert patch.actions.markAsPaid is True
    assert patch.clientDetails.name == "Ravi Traders"
    assert patch.items[0].price == 118000
    assert agent.is_busy is False


def test_blank_text_is_ignored():
    handler = gemini_replying({})
    agent = SmartFillAgent(llm=make_llm(handler))
    assert agent.extract("   ") is None
    assert handler.calls == []


def test_missing_key():
    with pytest.raises(SmartFillConfigError):
        SmartFillAgent(llm=make_llm(gemini_replying({}), api_key="")).extract("bill Ravi")


def test_service_failure_is_wrapped():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    agent = SmartFillAgent(llm=make_llm(handler))
    with pytest.raises(SmartFillError):
        agent.extract("bill Ravi")
    assert agent.is_busy is False


def test_non_object_reply_is_a_failure():
    agent = SmartFillAgent(llm=make_llm(gemini_replying([1, 2, 3])))
    with pytest.raises(SmartFillError):
        agent.extract("bill Ravi")


def test_second_request_while_busy_is_refused():
    entered = threading.Event()
    release = threading.Event()

    def slow_handler(request):
        entered.set()
        release.wait(timeout=5)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "{}"}]}}]})

    agent = SmartFillAgent(llm=make_llm(slow_handler))
    worker = threading.Thread(target=agent.extract, args=("first",))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert agent.is_busy is True
        with pytest.raises(SmartFillBusyError):
            agent.extract("second")
    finally:
        release.set()
        worker.join(timeout=5)
    assert agent.is_busy is False


def test_prompt_and_schema():
    prompt = build_prompt("clear items")
    assert prompt.endswith('Text: "clear items"')
    assert "actions.clearItems = true" in prompt
    item_schema = SMART_FILL_SCHEMA["properties"]["items"]["items"]
    assert item_schema["required"] == ["description", "quantity", "price"]
    assert set(SMART_FILL_SCHEMA["properties"]["actions"]["properties"]) == {
        "clearClient",
        "clearItems",
        "markAsUnpaid",
        "markAsPaid",
    }
