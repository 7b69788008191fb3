import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


_ENV_PATH = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(dotenv_path=_ENV_PATH, override=False)

_DEFAULT_DB_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data", "smartinvoice.db"))


def _get_env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _clean_key(value: str) -> str:
    # hosting dashboards sometimes wrap secrets in quotes
    return value.strip().replace('"', "").replace("'", "").strip()


def _api_key() -> str:
    for name in ("GOOGLE_API_KEY", "API_KEY", "VITE_API_KEY"):
        v = _clean_key(_get_env(name, ""))
        if v:
            return v
    return ""


class Settings(BaseModel):
    GOOGLE_API_KEY: str
    GEMINI_MODEL: str
    LLM_TIMEOUT_S: float
    DATABASE_URL: str
    INVOICE_PREFIX: str
    INVOICE_START: int
    DEFAULT_TAX_RATE: float
    PAYMENT_DELAY_S: float
    DEBUG: bool
    APP_ENV: str

    @property
    def smart_fill_configured(self) -> bool:
        return bool(self.GOOGLE_API_KEY)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        GOOGLE_API_KEY=_api_key(),
        GEMINI_MODEL=_get_env("GEMINI_MODEL", "gemini-2.0-flash"),
        LLM_TIMEOUT_S=float(_get_env("LLM_TIMEOUT_S", "60")),
        DATABASE_URL=_get_env("DATABASE_URL", f"sqlite:///{_DEFAULT_DB_PATH}"),
        INVOICE_PREFIX=_get_env("INVOICE_PREFIX", "INDY"),
        INVOICE_START=int(_get_env("INVOICE_START", "187")),
        DEFAULT_TAX_RATE=float(_get_env("DEFAULT_TAX_RATE", "18")),
        PAYMENT_DELAY_S=float(_get_env("PAYMENT_DELAY_S", "2.0")),
        DEBUG=_get_bool("DEBUG", True),
        APP_ENV=_get_env("APP_ENV", "development"),
    )


settings = get_settings()
