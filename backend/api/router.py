from fastapi import APIRouter

from backend.api.routes import history, invoices

api_router = APIRouter()

api_router.include_router(invoices.router)
api_router.include_router(history.router)
