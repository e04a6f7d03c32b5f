from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from ..config import Settings, get_settings


def engine_options(settings: Settings) -> dict[str, Any]:
    url = make_url(settings.sqlalchemy_url)
    if url.get_backend_name() != "postgresql":
        return {}
    # Server-side deadlines so a stuck lock or query aborts the request
    timeouts = (
        f"-c statement_timeout={settings.db_statement_timeout_ms} "
        f"-c lock_timeout={settings.db_lock_timeout_ms}"
    )
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_recycle": settings.db_pool_recycle_seconds,
        "pool_pre_ping": True,
        "connect_args": {"options": timeouts},
    }


settings = get_settings()

engine = create_engine(
    settings.sqlalchemy_url, future=True, echo=False, **engine_options(settings)
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
