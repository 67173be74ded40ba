"""Tabular data loading for data-driven scenarios.

Two backends:
- CSV files: header row defines column names, every other row is one Record
- SQL queries: a provider registry maps a provider name to a connection factory

Loading happens exactly once per scenario, before any traffic. No caching across calls.
"""

from __future__ import annotations

import csv
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable

from .exceptions import (
    DataSourceError,
    DataSourceNotFoundError,
    EmptyResultError,
    SchemaError,
    UnsupportedSourceError,
)
from .logging_config import get_logger
from .models import DataSourceConfig, Record, SourceKind

logger = get_logger("datasource")

# A factory takes a connection string and returns an open DB-API 2.0 connection.
ConnectionFactory = Callable[[str], Any]

CSV_ENCODING = "utf-8-sig"  # Tolerates a leading BOM from spreadsheet exports
SQLITE_MEMORY = ":memory:"
# Driver messages that mean the queried table or view does not exist
MISSING_TABLE_MARKERS = ("no such table", "does not exist", "invalid object name")


def _sqlite_connect(connection_string: str) -> sqlite3.Connection:
    """Open a SQLite database read-only. A missing file is an error, never created."""
    if connection_string == SQLITE_MEMORY or connection_string.startswith("file:"):
        return sqlite3.connect(connection_string, uri=True)
    p = Path(connection_string)
    if not p.is_file():
        raise DataSourceNotFoundError(
            f"SQLite database not found: '{connection_string}'",
            context={"path": connection_string},
        )
    return sqlite3.connect(f"{p.resolve().as_uri()}?mode=ro", uri=True)


_providers: dict[str, ConnectionFactory] = {"sqlite": _sqlite_connect}
_providers_lock = threading.Lock()


def register_provider(name: str, factory: ConnectionFactory) -> None:
    """Register (or replace) a database provider. Names are case-insensitive."""
    key = name.strip().lower()
    if not key:
        raise ValueError("Provider name must not be empty")
    with _providers_lock:
        _providers[key] = factory
    logger.debug("Registered database provider '%s'", key)


def unregister_provider(name: str) -> None:
    with _providers_lock:
        _providers.pop(name.strip().lower(), None)


def supported_providers() -> list[str]:
    with _providers_lock:
        return sorted(_providers)


def _connection_factory(provider_name: str) -> ConnectionFactory:
    with _providers_lock:
        factory = _providers.get(provider_name.strip().lower())
    if factory is None:
        raise UnsupportedSourceError(
            f"Database provider '{provider_name}' is not supported. "
            f"Supported providers: {', '.join(supported_providers())}. "
            "Register additional providers with loadfeed.datasource.register_provider().",
            context={"provider": provider_name},
        )
    return factory


def load_csv(path: str | Path) -> list[Record]:
    """Read every data row of a comma-delimited UTF-8 file into Records.

    Raises:
        DataSourceNotFoundError: file does not exist
        SchemaError: file has no header row
        EmptyResultError: header present but no data rows
    """
    p = Path(path)
    if not p.is_file():
        raise DataSourceNotFoundError(
            f"CSV data file not found: '{path}'. Ensure data_source.file_path is correct and the file exists.",
            context={"path": str(path)},
        )

    logger.debug("Loading CSV data source %s", p)
    records: list[Record] = []
    # newline="" keeps quoted fields with embedded newlines intact
    with p.open(encoding=CSV_ENCODING, newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if not header or not any(col.strip() for col in header):
            raise SchemaError(
                f"CSV file '{path}' has no header row. The first row must contain column names.",
                context={"path": str(path)},
            )
        columns = [col.strip() for col in header]
        width = len(columns)
        for row in reader:
            if not row:
                continue
            if len(row) < width:
                row = row + [""] * (width - len(row))
            records.append(Record.from_row(columns, row))

    if not records:
        raise EmptyResultError(
            f"CSV file '{path}' contains headers but no data rows.",
            context={"path": str(path)},
        )
    logger.info("Loaded %d records from %s", len(records), p)
    return records


def _query_error(provider_name: str, query: str, e: Exception) -> DataSourceError:
    """Map a driver exception raised by a query to the loader's error types."""
    text = str(e)
    context = {"provider": provider_name, "query": query}
    if any(marker in text.lower() for marker in MISSING_TABLE_MARKERS):
        return DataSourceNotFoundError(f"Database table not found: {text}", context=context, original_error=e)
    return DataSourceError(f"Database query failed: {text}", context=context, original_error=e)


def load_database(provider_name: str, connection_string: str, query: str) -> list[Record]:
    """Run a query and turn every result row into a Record.

    NULL values become empty strings; every other value is converted with str().

    Raises:
        UnsupportedSourceError: provider_name is not registered
        DataSourceNotFoundError: the database or a queried table does not exist
        DataSourceError: any other driver failure while connecting or querying
        SchemaError: the query returned no columns
        EmptyResultError: the query returned no rows
    """
    factory = _connection_factory(provider_name)
    logger.debug("Loading database data source via provider '%s'", provider_name)
    try:
        conn = factory(connection_string)
    except DataSourceError:
        raise
    except Exception as e:  # noqa: BLE001
        raise DataSourceError(
            f"Cannot connect to database via provider '{provider_name}': {e}",
            context={"provider": provider_name},
            original_error=e,
        ) from e
    try:
        cursor = conn.cursor()
        try:
            cursor.execute(query)
            description = cursor.description
            rows = cursor.fetchall() if description else []
        finally:
            cursor.close()
    except Exception as e:  # noqa: BLE001
        raise _query_error(provider_name, query, e) from e
    finally:
        conn.close()

    if not description:
        raise SchemaError(
            "Database query returned no columns.",
            context={"provider": provider_name, "query": query},
        )
    columns = [str(col[0]) for col in description]
    records = [Record.from_row(columns, ("" if value is None else str(value) for value in row)) for row in rows]
    if not records:
        raise EmptyResultError(
            f"Database query returned no rows. Query: {query}",
            context={"provider": provider_name},
        )
    logger.info("Loaded %d records via provider '%s'", len(records), provider_name)
    return records


def load_records(source: DataSourceConfig) -> list[Record]:
    """Load the record set described by source. Dispatches on source.kind."""
    if source.kind == SourceKind.CSV:
        return load_csv(source.file_path or "")
    if source.kind == SourceKind.DATABASE:
        return load_database(source.provider_name, source.connection_string or "", source.query or "")
    raise UnsupportedSourceError(
        f"Data source type '{source.kind}' is not supported. "
        f"Supported types: {', '.join(k.value for k in SourceKind)}.",
        context={"type": str(source.kind)},
    )
