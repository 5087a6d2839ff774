import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()
db_engine = None
SessionLocal = None


def init_db(database_url: str = None):
    global db_engine, SessionLocal
    database_url = database_url or DATABASE_URL
    if database_url:
        db_url = database_url.replace("postgres://", "postgresql://", 1)
        db_engine = create_engine(db_url)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
        try:
            # Import so the tables register on Base.metadata
            import models  # noqa: F401
            Base.metadata.create_all(bind=db_engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error("Database table creation failed (will retry on first request): %s", e)
        return True
    else:
        logger.info("DATABASE_URL not set - running without database storage")
        return False


def get_db():
    if SessionLocal is None:
        return None
    return SessionLocal()
