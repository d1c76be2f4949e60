from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from redirector_app.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency: yield a SQLAlchemy session and ensure it's closed.
    Usage: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
