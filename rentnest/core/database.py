from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from rentnest.core.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create tables for every model registered on ``Base``."""
    # Import models so they are attached to the metadata
    from rentnest.models import property, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
