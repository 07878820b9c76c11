import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from eventmatch.base.config import settings

logger = logging.getLogger("database")

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # Registers the mapped classes on Base.metadata
    from eventmatch.models import tables  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("[Database] Tables ensured.")
