from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are handed between the request thread and FastAPI's
    # threadpool, so the same-thread check has to be off.
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 30}
    return {}


# The engine is the entry point to the database. It's configured with the
# database URL and handles the connection pooling.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# SessionLocal is a factory for creating new Session objects.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency: one session per request, always closed afterwards.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
