"""
Shared test fixtures.

Provides an in-memory SQLite database, a per-test session, and an
application config tuned for fast tests (cheap password hashing, temporary
download directory).
"""

import pytest
from sqlalchemy.orm import Session

from content_access_core.config import (
    AppConfig,
    DatabaseConfig,
    SecurityConfig,
    StorageConfig,
    TransferConfig,
    reset_config,
    set_config,
)
from content_access_core.db import DatabaseManager, import_all_models
from content_access_core.db.db_config import Base, close_db, initialize_db


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(connection_string="sqlite:///:memory:", echo=False)


@pytest.fixture(scope="session", autouse=True)
def app_config(db_config: DatabaseConfig, tmp_path_factory) -> AppConfig:
    """Install a test configuration for the whole session."""
    config = AppConfig(
        environment="test",
        database=db_config,
        storage=StorageConfig(connection_string="", container_name="attachments"),
        transfer=TransferConfig(download_dir=str(tmp_path_factory.mktemp("downloads"))),
        security=SecurityConfig(password_hash_iterations=1_000),
    )
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig, app_config: AppConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    manager = initialize_db(db_config)
    yield manager
    close_db()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so that each
    test starts from an empty database.
    """
    session = db_manager.get_session()

    Base.metadata.create_all(db_manager.engine)

    yield session

    session.rollback()
    session.close()

    Base.metadata.drop_all(db_manager.engine)
