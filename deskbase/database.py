"""Database configuration, engine construction and schema synchronization."""

import os
import logging
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

from deskbase.models import Base, User

# Load environment variables
load_dotenv()

# Configure logging
logger = logging.getLogger(__name__)

# Get database configuration from environment
PATH_DATABASE = os.getenv("PATH_DATABASE", ".")
NAME_DB = os.getenv("NAME_DB", "database.sqlite")

SAMPLE_USER_NAME = "Sample User"
SAMPLE_USER_EMAIL = "sample@example.com"


def get_database_url() -> str:
    """
    Build the database URL from the environment.

    DATABASE_URL wins when set; otherwise the SQLite file lives at
    PATH_DATABASE/NAME_DB.

    Returns:
        str: SQLAlchemy database URL
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url
    database_path = Path(PATH_DATABASE) / NAME_DB
    return f"sqlite:///{database_path}"


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLite engine for a database URL.

    The parent directory of a file database is created when missing, and
    every pooled connection has foreign key enforcement switched on so
    the posts -> users cascade is applied by SQLite itself.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: Configured SQLAlchemy engine

    Raises:
        OSError: If the database directory cannot be created
    """
    url = make_url(database_url)
    if url.database and url.database != ":memory:":
        # Ensure database directory exists
        db_dir = Path(url.database).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Database URL: {database_url}")

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False}  # Needed for SQLite
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Engine):
    """Synchronize the schema by creating any missing tables."""
    logger.info("Initializing database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def seed_sample_user(session_factory: sessionmaker):
    """
    Create a sample user when the users table is empty.

    Creates a user with:
    - Name: Sample User
    - Email: sample@example.com

    Only creates if no user exists yet.

    Args:
        session_factory: Session factory of an initialized database
    """
    logger.info("Checking sample user seed...")

    db = session_factory()
    try:
        existing_user = db.query(User).first()

        if existing_user:
            logger.info("Users already present, skipping sample user seed")
            return

        sample_user = User(name=SAMPLE_USER_NAME, email=SAMPLE_USER_EMAIL)

        db.add(sample_user)
        db.commit()
        db.refresh(sample_user)

        logger.info(f"Sample user created successfully: {SAMPLE_USER_EMAIL}")

    except Exception as e:
        logger.error(f"Failed to seed sample user: {e}")
        db.rollback()
    finally:
        db.close()
