"""
Unit tests for database connection management
"""
import pytest
from unittest.mock import Mock, patch, AsyncMock
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import DatabaseManager, get_db


@pytest.fixture
def db_manager(tmp_path):
    """Create a fresh database manager instance for testing"""
    return DatabaseManager(database_url=f"sqlite+aiosqlite:///{tmp_path / 'db.sqlite'}", echo=False)


@pytest.fixture
def mocked_sessions(db_manager):
    """Bypass engine creation and hand out a mock session"""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session_context = AsyncMock()
    mock_session_context.__aenter__.return_value = mock_session
    mock_session_context.__aexit__.return_value = None

    db_manager.async_session_maker = Mock(return_value=mock_session_context)
    db_manager._initialized = True
    return mock_session


@pytest.mark.asyncio
async def test_database_initialization(db_manager):
    """Test database manager initialization creates all tables"""
    await db_manager.initialize()

    assert db_manager._initialized is True
    assert db_manager.engine is not None
    assert db_manager.async_session_maker is not None

    async with db_manager.engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    assert {"analyses", "report_access_tokens", "report_jobs"} <= set(tables)

    await db_manager.close()


@pytest.mark.asyncio
async def test_initialization_is_idempotent(db_manager):
    """Test that a second initialize does not build a new engine"""
    await db_manager.initialize()
    engine = db_manager.engine

    await db_manager.initialize()

    assert db_manager.engine is engine
    await db_manager.close()


@pytest.mark.asyncio
async def test_initialization_uses_settings():
    """Test URL and echo fall back to settings"""
    manager = DatabaseManager()
    with patch('app.database.create_async_engine') as mock_engine:
        mock_engine.side_effect = RuntimeError("stop after engine creation")

        with pytest.raises(RuntimeError):
            await manager.initialize()

    url = mock_engine.call_args.args[0]
    assert url.startswith("sqlite+aiosqlite://")
    assert mock_engine.call_args.kwargs["echo"] is False
    assert manager._initialized is False


@pytest.mark.asyncio
async def test_database_close(db_manager):
    """Test closing database connections"""
    mock_engine = AsyncMock()
    db_manager.engine = mock_engine
    db_manager._initialized = True

    await db_manager.close()

    assert db_manager._initialized is False
    mock_engine.dispose.assert_called_once()


@pytest.mark.asyncio
async def test_get_session(db_manager, mocked_sessions):
    """Test getting a database session"""
    async with db_manager.get_session() as session:
        assert session == mocked_sessions

    # Verify session lifecycle
    mocked_sessions.commit.assert_called_once()
    mocked_sessions.close.assert_called_once()


@pytest.mark.asyncio
async def test_get_session_rollback_on_error(db_manager, mocked_sessions):
    """Test that session rolls back on error"""
    with pytest.raises(ValueError):
        async with db_manager.get_session():
            raise ValueError("Test error")

    mocked_sessions.rollback.assert_called_once()
    mocked_sessions.commit.assert_not_called()
    mocked_sessions.close.assert_called_once()


@pytest.mark.asyncio
async def test_health_check_success(db_manager):
    """Test successful health check against a real database"""
    assert await db_manager.health_check() is True
    await db_manager.close()


@pytest.mark.asyncio
async def test_health_check_failure(db_manager):
    """Test failed health check"""
    with patch.object(db_manager, 'get_session') as mock_get_session:
        # Mock query execution failure
        mock_get_session.side_effect = Exception("Database connection failed")

        result = await db_manager.health_check()
        assert result is False


@pytest.mark.asyncio
async def test_get_db_dependency():
    """Test the get_db dependency function"""
    with patch('app.database.db_manager') as mock_db_manager:
        # Mock the get_session context manager
        mock_session = AsyncMock()
        mock_context = AsyncMock()
        mock_context.__aenter__.return_value = mock_session
        mock_context.__aexit__.return_value = None

        mock_db_manager.get_session.return_value = mock_context

        # Test the dependency
        async for session in get_db():
            assert session == mock_session
