from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from backend.api.deps import get_kv_store
from backend.api.router import api_router
from backend.config import settings
from backend.database.kv_client import KeyValueStore
from backend.services.invoice_numbers import LAST_ID_KEY


app = FastAPI(
    title="SmartInvoice Backend",
    version="1.0.0",
    description="GST invoice editor: tax reconciliation, smart fill, payment simulation, PDF export",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.on_event("startup")
async def _startup() -> None:
    try:
        kv = get_kv_store()
        kv.get(LAST_ID_KEY)
    except Exception as e:
        logger.warning("History storage not ready at startup: {}", str(e))


@app.get("/health")
async def health(kv: KeyValueStore = Depends(get_kv_store)) -> Dict[str, Any]:
    status: Dict[str, Any] = {"ok": True, "service": "smartinvoice-backend", "env": settings.APP_ENV}

    try:
        kv.get(LAST_ID_KEY)
        status["storage"] = True
    except Exception:
        status["storage"] = False

    # smart fill refuses requests without a key
    status["gemini"] = settings.smart_fill_configured
    return status
