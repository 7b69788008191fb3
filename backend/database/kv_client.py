from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from backend.config import settings


def _load_schema_sql() -> str:
    schema_path = Path(__file__).with_name("schema.sql")
    return schema_path.read_text(encoding="utf-8")


class KeyValueStore:
    """String blobs under string keys; the only persistence the app needs."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """
    SQLAlchemy engine + session factory over a single kv_store table.
    Defaults to a SQLite file; any SQLAlchemy URL works.
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url or settings.DATABASE_URL
        if self.database_url.startswith("sqlite:///"):
            Path(self.database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(self.database_url, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self._schema_ready = False

    def init_schema(self) -> None:
        schema_sql = _load_schema_sql()
        with self.engine.begin() as conn:
            for stmt in [s.strip() for s in schema_sql.split(";") if s.strip()]:
                conn.execute(text(stmt))
        self._schema_ready = True
        logger.info("Key-value schema initialized url={}", self.engine.url.render_as_string(hide_password=True))

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        if not self._schema_ready:
            self.init_schema()
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, key: str) -> Optional[str]:
        with self.session() as s:
            row = s.execute(text("SELECT value FROM kv_store WHERE key = :key"), {"key": key}).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.session() as s:
            updated = s.execute(
                text("UPDATE kv_store SET value = :value WHERE key = :key"),
                {"key": key, "value": value},
            ).rowcount
            if not updated:
                s.execute(
                    text("INSERT INTO kv_store (key, value) VALUES (:key, :value)"),
                    {"key": key, "value": value},
                )

    def delete(self, key: str) -> None:
        with self.session() as s:
            s.execute(text("DELETE FROM kv_store WHERE key = :key"), {"key": key})
