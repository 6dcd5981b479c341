"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (StaticPool for SQLite)
- Test database support
- Table definitions for profiles, documents, discount codes and billing
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from coverso.core.config import settings


logger = logging.getLogger("coverso")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def build_engine(url: str):
    """Create an engine; SQLite gets a single shared connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def build_session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)
    _SessionLocal = build_session_factory(_engine)

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def session_scope(session_factory: sessionmaker):
    """Transactional scope: commit on success, rollback on error."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine=None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine=None):
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine or get_engine())


def reset_database(engine=None):
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables(engine)
    create_all_tables(engine)


def check_connection(engine=None) -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        eng = engine or get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database connection check failed", extra={"error": str(e)})
        return False


# Profiles: one row per principal, written with merge semantics
profiles = Table(
    'profiles',
    metadata,
    Column('principal_id', String(128), primary_key=True),
    Column('email', String(320), nullable=True),
    Column('full_name', Text, nullable=True),
    Column('user_location', Text, nullable=True),
    Column('phone', String(64), nullable=True),
    Column('linkedin_url', Text, nullable=True),
    Column('profile_image', Text, nullable=True),
    Column('industries', JSON, nullable=True),
    Column('academic_level', String(100), nullable=True),
    Column('daily_goal', Integer, nullable=True),
    Column('plan', String(50), nullable=True),
    Column('pending_plan', String(50), nullable=True),
    Column('onboarding_complete', Boolean, nullable=False, server_default='0'),
    Column('stripe_customer_id', String(100), nullable=True),
    Column('stripe_subscription_id', String(100), nullable=True),
    Column('stripe_price_id', String(100), nullable=True),
    Column('subscription_status', String(50), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_profiles_plan', 'plan'),
)

# Generated cover letters; per-owner count is the usage figure
generated_documents = Table(
    'generated_documents',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('owner_id', String(128), nullable=False, index=True),
    Column('file_name', Text, nullable=False),
    Column('content', Text, nullable=False),
    Column('job_title', Text, nullable=True),
    Column('company_name', Text, nullable=True),
    Column('key_focus_points', JSON, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    # Composite index for list/count pattern: (owner_id, created_at)
    Index('idx_generated_documents_owner_created', 'owner_id', 'created_at'),
)

# Discount codes: validity = existence of a row keyed by the code
discount_codes = Table(
    'discount_codes',
    metadata,
    Column('code', String(100), primary_key=True),
    Column('plan_name', String(50), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Upgrade attempts: what reconciliation needs to map a subscription back to a plan
billing_subscriptions = Table(
    'billing_subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('principal_id', String(128), nullable=False, index=True),
    Column('stripe_subscription_id', String(100), nullable=True, unique=True),
    Column('stripe_customer_id', String(100), nullable=True),
    Column('price_id', String(100), nullable=False),
    Column('plan_name', String(50), nullable=False),
    Column('state', String(50), nullable=False, index=True),
    Column('error', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    Index('idx_billing_subscriptions_principal_state', 'principal_id', 'state'),
)
