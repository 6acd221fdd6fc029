from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import get_settings

settings = get_settings()

engine_options: dict[str, Any] = {"echo": settings.debug, "future": True, "pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    # Websocket handlers borrow short-lived sessions from the threadpool.
    engine_options.update(pool_size=10, max_overflow=20)

engine = create_engine(settings.database_url, **engine_options)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
