from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings

# The engine owns the connection pool for the configured database URL.
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# One session per request; commits are explicit.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        # Always closed, even if the endpoint raised.
        db.close()
