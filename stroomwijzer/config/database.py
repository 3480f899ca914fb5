"""
Database Configuration and Management Module

This module provides connection and query management for the profile store.
Unlike a process-wide singleton, a DatabaseManager is constructed explicitly
(by ``create_app`` or the CLI) and handed to the repositories that need it,
so tests can point it at a temporary file.

Tags:
    - database
    - configuration
    - sqlite
    - data-access
    - repository-pattern

Features:
    - Automatic connection cleanup and transaction handling
    - Type-safe parameter binding for SQL injection prevention
    - Pandas DataFrame integration for reads
    - Idempotent schema creation

Usage:
    ```python
    from stroomwijzer.config import DatabaseManager

    db = DatabaseManager("/tmp/profiles.db")
    db.initialize_schema()
    df = db.execute_query("SELECT * FROM profiles WHERE user_id = ?", ["u-1"])
    ```

Database Schema:
    - Table: profiles
    - One row per user; nested records (assumptions, warnings, latest
      price check) are stored as JSON text.
"""

import os
import sqlite3
from typing import Any, List, Optional, Union

import pandas as pd


PROFILES_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    zipcode TEXT NOT NULL,
    house_number TEXT NOT NULL,
    motivation TEXT,
    household_size TEXT NOT NULL,
    house_type TEXT NOT NULL,
    work_from_home INTEGER NOT NULL DEFAULT 0,
    heat_pump INTEGER NOT NULL DEFAULT 0,
    district_heating INTEGER NOT NULL DEFAULT 0,
    solar_panels INTEGER NOT NULL DEFAULT 0,
    current_provider TEXT NOT NULL,
    current_contract_type TEXT NOT NULL,
    monthly_cost REAL NOT NULL,
    estimated_kwh_per_month INTEGER,
    estimated_per_kwh_rate REAL,
    estimate_confidence TEXT,
    estimate_assumptions TEXT,
    estimate_reasoning TEXT,
    verified_kwh_per_month REAL,
    verified_per_kwh_rate REAL,
    verified_provider TEXT,
    verified_contract_type TEXT,
    verified_confidence TEXT,
    verified_warnings TEXT,
    verified_at TEXT,
    pending_extraction TEXT,
    latest_price_check TEXT,
    subscription_status TEXT NOT NULL DEFAULT 'free',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class DatabaseManager:
    """
    Connection and query management for the sqlite profile store.

    Examples:
        >>> db = DatabaseManager(":memory:")
        >>> count = db.execute_scalar("SELECT COUNT(*) FROM profiles")
    """

    def __init__(self, database_path: str, timeout: int = 30):
        """
        Args:
            database_path: Path to the sqlite file. The parent directory is
                created when missing.
            timeout: Seconds sqlite waits on a locked database.
        """
        self.database_path = database_path
        self.timeout = timeout

        db_dir = os.path.dirname(self.database_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection with row factory enabled.

        The connection should be closed after use; the execute_* helpers
        below handle that automatically.
        """
        conn = sqlite3.connect(self.database_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row  # Enable column access by name
        return conn

    def initialize_schema(self) -> None:
        """Create the profiles table if it does not exist yet."""
        conn = self.get_connection()
        try:
            conn.execute(PROFILES_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def execute_query(self, query: str, params: Optional[List[Any]] = None) -> pd.DataFrame:
        """
        Execute a SELECT query and return results as a pandas DataFrame.

        Args:
            query (str): SQL SELECT query. Use ? placeholders for parameters.
            params (Optional[List[Any]]): Values bound to the placeholders.

        Returns:
            pd.DataFrame: Query results with column names preserved.

        Raises:
            sqlite3.Error: If the query execution fails.
        """
        conn = self.get_connection()
        try:
            if params is None:
                params = []
            return pd.read_sql_query(query, conn, params=params)
        finally:
            conn.close()

    def execute_update(self, query: str, params: Optional[List[Any]] = None) -> int:
        """
        Execute an INSERT, UPDATE, or DELETE query and commit it.

        Returns:
            int: Number of rows affected by the query.

        Raises:
            sqlite3.Error: If the query fails or cannot be committed.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            if params is None:
                params = []
            cursor.execute(query, params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def execute_scalar(self, query: str, params: Optional[List[Any]] = None) -> Union[Any, None]:
        """
        Execute a query and return a single scalar value, or None.

        Raises:
            sqlite3.Error: If the query execution fails.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            if params is None:
                params = []
            cursor.execute(query, params)
            result = cursor.fetchone()
            return result[0] if result else None
        finally:
            conn.close()
