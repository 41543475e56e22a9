"""Database interaction class for ClickHouse."""

import os
import logging
from typing import Optional, Sequence

import pandas as pd
import clickhouse_connect
from clickhouse_connect.driver.client import Client

from ohlcv_bench.models import OHLCVRecord
from ohlcv_bench.storage.base import QueryableBackend, records_to_dataframe

DEFAULT_TABLE_NAME = "stock_data"


class ClickHouseDataBase(QueryableBackend):
    """
    Columnar backend talking to ClickHouse through clickhouse-connect.

    Batches are sent with ``insert_df``; the table is expected to exist already
    (``MergeTree`` ordered by ``(instrument_id, date)``). ClickHouse does not
    enforce uniqueness, so reloading the same range produces duplicate rows.

    Note: one client instance is not meant to be shared by several threads
    inserting at the same time. The loader only ever runs one batch per backend
    at a time.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        table_name: str = DEFAULT_TABLE_NAME,
    ):
        """
        Initializes the database connection. Reads credentials from environment
        variables if not provided.

        Environment variables used:
        - CLICKHOUSE_HOST (default: 'localhost')
        - CLICKHOUSE_PORT (default: 8123)
        - CLICKHOUSE_DATABASE (default: 'default')
        - CLICKHOUSE_USER (default: 'default')
        - CLICKHOUSE_PASSWORD (default: '')
        """
        self.logger = logging.getLogger(__name__)

        self.host = host or os.environ.get("CLICKHOUSE_HOST", "localhost")
        self.port = port or int(os.environ.get("CLICKHOUSE_PORT", 8123))
        self.database = database or os.environ.get("CLICKHOUSE_DATABASE", "default")
        self.user = user or os.environ.get("CLICKHOUSE_USER", "default")
        self.password = password or os.environ.get("CLICKHOUSE_PASSWORD", "")
        self.table_name = table_name

        self.client: Optional[Client] = None
        self._connect()

    def _connect(self):
        """Establishes the connection to the ClickHouse database."""
        try:
            self.client = clickhouse_connect.get_client(
                host=self.host,
                port=self.port,
                database=self.database,
                username=self.user,
                password=self.password,
            )
            self.client.command('SELECT 1')
            self.logger.info(f"Connected to ClickHouse database '{self.database}' at {self.host}:{self.port}")
        except Exception as e:
            self.logger.error(f"Failed to connect to ClickHouse: {e}")
            self.client = None
            raise

    def _require_client(self) -> Client:
        if not self.client:
            raise RuntimeError("ClickHouse client is not connected.")
        return self.client

    def execute_query(self, query: str) -> pd.DataFrame:
        """
        Executes a read query and returns the result as a pandas DataFrame.

        Args:
            query: The SQL query string.
        """
        client = self._require_client()
        try:
            self.logger.debug(f"Executing query: {query}")
            return client.query_df(query)
        except Exception as e:
            self.logger.error(f"Error executing query: {e}\nQuery: {query}")
            raise

    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        """
        Inserts one batch of records into the configured table.

        The ISO ``date`` strings are converted to ``datetime.date`` so they map
        onto a ClickHouse ``Date`` column.
        """
        client = self._require_client()
        if not records:
            self.logger.debug(f"Empty batch for table '{self.table_name}'. Skipping insert.")
            return

        df = records_to_dataframe(records)
        df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d").dt.date

        try:
            client.insert_df(self.table_name, df)
            self.logger.debug(f"Inserted {len(df)} rows into '{self.table_name}'.")
        except Exception as e:
            self.logger.error(f"Error inserting batch into '{self.table_name}': {e}")
            raise

    def close(self):
        """Closes the database connection."""
        if self.client:
            try:
                self.client.close()
                self.logger.info("ClickHouse connection closed.")
            except Exception as e:
                self.logger.error(f"Error closing ClickHouse connection: {e}")
            finally:
                self.client = None

    def __enter__(self):
        """Context manager entry point."""
        if not self.client:
            self._connect()
        return self
