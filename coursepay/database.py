from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from coursepay.config import settings

DATABASE_URL = settings.database_url

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def get_session_factory():
    """Dependency returning the session factory shared by the request handlers."""
    return SessionLocal
