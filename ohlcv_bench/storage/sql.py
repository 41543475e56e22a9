"""SQLAlchemy backend for PostgreSQL and TimescaleDB (any dialect with ON CONFLICT)."""

import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd
from sqlalchemy import Column, Date, Integer, MetaData, Numeric, Table, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker

from ohlcv_bench.exceptions import ConfigurationError
from ohlcv_bench.models import OHLCVRecord
from ohlcv_bench.storage.base import QueryableBackend

DEFAULT_TABLE_NAME = "stock_data"
CONFLICT_COLUMNS = ["instrument_id", "date"]

# Dialects whose insert() supports on_conflict_do_nothing
_DIALECT_INSERTS: Dict[str, Callable[[Table], Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_stock_table(table_name: str = DEFAULT_TABLE_NAME, metadata: Optional[MetaData] = None) -> Table:
    """
    Describes the ``stock_data`` table the loader writes into.

    Only used to build INSERT statements; creating the table is left to the
    database setup.
    """
    return Table(
        table_name,
        metadata if metadata is not None else MetaData(),
        Column("instrument_id", Integer, primary_key=True, comment="Synthetic instrument id"),
        Column("date", Date, primary_key=True, comment="Trading day"),
        Column("open", Numeric(10, 4, asdecimal=False), nullable=False),
        Column("high", Numeric(10, 4, asdecimal=False), nullable=False),
        Column("low", Numeric(10, 4, asdecimal=False), nullable=False),
        Column("close", Numeric(10, 4, asdecimal=False), nullable=False),
        Column("volume", Numeric(15, 2, asdecimal=False), nullable=False),
    )


class SqlDataBase(QueryableBackend):
    """
    Row-oriented backend reached through a SQLAlchemy URL.

    Each batch is written with a single executemany of
    ``INSERT ... ON CONFLICT (instrument_id, date) DO NOTHING``, so rows already
    present are skipped instead of failing the whole batch.
    """

    def __init__(self, url: str, table_name: str = DEFAULT_TABLE_NAME, echo: bool = False):
        self.logger = logging.getLogger(__name__)
        if not url:
            raise ConfigurationError("A database URL is required for the SQL backend.")

        dialect = make_url(url).get_backend_name()
        if dialect not in _DIALECT_INSERTS:
            raise ConfigurationError(
                f"Unsupported SQL dialect '{dialect}' (supported: {', '.join(sorted(_DIALECT_INSERTS))})",
                {"dialect": dialect},
            )

        self.engine = create_engine(url, echo=echo, pool_pre_ping=True)
        self.table = build_stock_table(table_name)
        self._insert = _DIALECT_INSERTS[dialect]
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self._connect()

    def _connect(self):
        """Checks the database is reachable."""
        safe_url = self.engine.url.render_as_string(hide_password=True)
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            self.logger.info(f"Connected to {safe_url}")
        except Exception as e:
            self.logger.error(f"Failed to connect to {safe_url}: {e}")
            raise

    @staticmethod
    def _to_row(record: OHLCVRecord) -> Dict[str, Any]:
        row = record.as_dict()
        row["date"] = date.fromisoformat(record.date)
        return row

    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        """Inserts a batch, ignoring rows that clash on (instrument_id, date)."""
        if not records:
            self.logger.debug(f"Empty batch for table '{self.table.name}'. Skipping insert.")
            return

        rows: List[Dict[str, Any]] = [self._to_row(record) for record in records]
        stmt = self._insert(self.table).on_conflict_do_nothing(index_elements=CONFLICT_COLUMNS)

        session = self.SessionLocal()
        try:
            session.execute(stmt, rows)
            session.commit()
            self.logger.debug(f"Inserted {len(rows)} rows into '{self.table.name}'.")
        except Exception as e:
            session.rollback()
            self.logger.error(f"Error inserting batch into '{self.table.name}': {e}")
            raise
        finally:
            session.close()

    def execute_query(self, query: str) -> pd.DataFrame:
        """Executes a read query and returns the result as a pandas DataFrame."""
        try:
            self.logger.debug(f"Executing query: {query}")
            with self.engine.connect() as conn:
                return pd.read_sql(text(query), conn)
        except Exception as e:
            self.logger.error(f"Error executing query: {e}\nQuery: {query}")
            raise

    def close(self):
        """Disposes of the connection pool."""
        self.engine.dispose()
        self.logger.info(f"Closed connection pool for table '{self.table.name}'.")
