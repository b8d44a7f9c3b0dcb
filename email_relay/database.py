import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create the engine for the database-backed activity store"""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    try:
        engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Test connections before using
            connect_args=connect_args,
            echo=False,
        )
        logger.info("✅ Database engine created successfully")
    except Exception as e:
        logger.error(f"❌ Failed to create database engine: {e}")
        raise
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine, checkfirst: bool = True) -> None:
    # Import models so they're registered with Base
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=checkfirst)
