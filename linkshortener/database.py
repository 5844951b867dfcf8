from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from linkshortener import config

SQLITE_PATH = Path(__file__).parent.parent / "linkshortener_dev.db"


def build_engine(environment: str = config.ENVIRONMENT, database_url: str | None = config.DATABASE_URL):
    """Pooled engine for `prod`, local SQLite file for everything else."""
    if environment == "prod":
        if not database_url:
            raise RuntimeError("DATABASE_URL must be set in production")
        return create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
        )
    return create_engine(
        f"sqlite:///{SQLITE_PATH}",
        connect_args={"check_same_thread": False},  # sessions cross FastAPI's threadpool
    )


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_factory() -> sessionmaker:
    """Session factory for work that outlives the request (background tasks)."""
    return SessionLocal
