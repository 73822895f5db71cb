"""
Unit tests for database functionality.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from consult_scheduling.core.database import build_engine, create_tables, drop_tables, get_db_context


class TestGetDbContext:
    """Test cases for the session context manager."""

    def test_commits_and_closes(self):
        """Test a successful block commits and closes the session."""
        mock_session = MagicMock()
        factory = MagicMock(return_value=mock_session)

        with get_db_context(factory) as db:
            assert db is mock_session

        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()
        mock_session.close.assert_called_once()

    def test_rolls_back_on_error(self):
        """Test an exception inside the block rolls back, closes and re-raises."""
        mock_session = MagicMock()
        factory = MagicMock(return_value=mock_session)

        with pytest.raises(ValueError):
            with get_db_context(factory):
                raise ValueError("Test exception")

        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()


class TestTableManagement:
    """Test schema creation helpers."""

    def test_create_and_drop_tables(self):
        """Test every model table is created and dropped."""
        engine = build_engine("sqlite://")

        create_tables(bind=engine)
        tables = set(inspect(engine).get_table_names())
        assert {
            "providers",
            "patients",
            "provider_schedules",
            "weekly_availability",
            "break_periods",
            "schedule_exceptions",
            "appointments",
        } <= tables

        drop_tables(bind=engine)
        assert inspect(engine).get_table_names() == []
        engine.dispose()

    @patch("consult_scheduling.core.database.Base")
    def test_create_tables_error_propagates(self, mock_base):
        """Test database errors during creation are re-raised."""
        mock_base.metadata.create_all.side_effect = SQLAlchemyError("Database error")

        with pytest.raises(SQLAlchemyError):
            create_tables(bind=MagicMock())
