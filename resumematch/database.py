from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from resumematch.core.config import settings

Base = declarative_base()

def build_engine(database_url: str) -> Engine:
    """Support both PostgreSQL and SQLite via the configured URL."""
    if database_url.startswith("postgresql"):
        return create_engine(database_url, pool_pre_ping=True)
    # SQLite: the KV adapter hands sessions to worker threads
    return create_engine(
        database_url, connect_args={"check_same_thread": False}
    )

engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db(bind: Engine = None):
    """
    Registers the storage models and initializes the schema.
    This should be called during the application startup lifespan.
    """
    from resumematch.models import kv_entry  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
