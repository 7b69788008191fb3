import json
import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from backend.config import settings

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class LLMConfigError(RuntimeError):
    """No usable API key; nothing was sent."""


class LLMError(RuntimeError):
    """The service could not be reached or returned nothing usable."""


def _strip_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        # remove ```json / ``` and trailing ```
        t = t.split("\n", 1)[1] if "\n" in t else ""
        if t.endswith("```"):
            t = t[: -3]
    return t.strip()


def _safe_json_loads(text: str) -> Any:
    t = _strip_fences(text)
    try:
        return json.loads(t)
    except ValueError:
        # attempt to locate a JSON object inside the text
        start = t.find("{")
        end = t.rfind("}")
        if start != -1 and end != -1 and end > start:
            return json.loads(t[start : end + 1])
        raise


def _retryable(status: int) -> bool:
    return status == 429 or status >= 500


class LLMClient:
    """
    Gemini generateContent wrapper with retry + logging.

    ask(prompt) -> str
    ask_json(prompt, response_schema) -> parsed JSON
    - 3 attempts exponential backoff on transport errors, 429 and 5xx
    - strips markdown fences for JSON workflows
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        backoff_s: float = 1.0,
    ) -> None:
        self.api_key = settings.GOOGLE_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_S
        self.transport = transport
        self.backoff_s = backoff_s

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ask(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not self.configured:
            logger.error("LLMClient.ask called without GOOGLE_API_KEY")
            raise LLMConfigError("GOOGLE_API_KEY is missing. Set it (or API_KEY) in the environment and restart.")

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if response_schema is not None:
            payload["generationConfig"]["responseMimeType"] = "application/json"
            payload["generationConfig"]["responseSchema"] = response_schema

        last_err: Optional[Exception] = None
        for attempt in range(1, 4):
            try:
                logger.info("Gemini call attempt={} model={}", attempt, self.model)
                t0 = time.time()
                with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                    resp = client.post(
                        GEMINI_URL.format(model=self.model),
                        headers={"x-goog-api-key": self.api_key, "content-type": "application/json"},
                        json=payload,
                    )
                resp.raise_for_status()
                out = self._extract_text(resp.json())
                dt = time.time() - t0
                logger.info("Gemini response chars={} latency_s={:.2f}", len(out), dt)
                return _strip_fences(out)
            except (httpx.HTTPError, ValueError) as e:
                if isinstance(e, httpx.HTTPStatusError) and not _retryable(e.response.status_code):
                    status = e.response.status_code
                    logger.error("Gemini rejected request status={} model={}", status, self.model)
                    raise LLMError(f"Gemini rejected the request (HTTP {status})") from e
                last_err = e
                wait = self.backoff_s * 2 ** (attempt - 1)
                logger.exception("Gemini call failed attempt={} wait_s={} err={}", attempt, wait, str(e))
                if attempt < 3:
                    time.sleep(wait)
        raise LLMError("Gemini call failed after 3 attempts") from last_err

    def ask_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Any:
        text = self.ask(prompt=prompt, system_prompt=system_prompt, response_schema=response_schema)
        if not text:
            raise LLMError("Gemini returned an empty response")
        try:
            return _safe_json_loads(text)
        except ValueError as e:
            raise LLMError(f"Gemini returned unparsable JSON: {e}") from e

    @staticmethod
    def _extract_text(body: Any) -> str:
        candidates = body.get("candidates", []) if isinstance(body, dict) else []
        if not candidates:
            raise ValueError("response has no candidates")
        parts = (candidates[0].get("content") or {}).get("parts", [])
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
