"""
Database Session Management

Настройка SQLAlchemy для работы с SQLite или PostgreSQL
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from presale_bot.core.logging_config import get_logger

logger = get_logger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """
    Create engine with dialect-appropriate settings

    SQLite is fine for a single-instance deployment; use PostgreSQL when the
    read API and the poller run in separate processes.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False
        )
        logger.info(f"Using SQLite database: {database_url}")
    else:
        engine = create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            echo=False
        )
        logger.info("Using PostgreSQL database")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to `engine`"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Инициализация database

    Создает все таблицы из models (no-op for tables that already exist)
    """
    from presale_bot.db.models import Base

    logger.info("Creating database tables", extra={"database_url": str(engine.url)})
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def drop_db(engine: Engine) -> None:
    """
    Удалить все таблицы (для тестов)
    """
    from presale_bot.db.models import Base

    logger.warning("Dropping all database tables")
    Base.metadata.drop_all(bind=engine)
    logger.info("All database tables dropped")


__all__ = ["create_db_engine", "create_session_factory", "init_db", "drop_db"]
