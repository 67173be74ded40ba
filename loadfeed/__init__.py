"""
loadfeed - Data-driven HTTP request templating engine.

Request templates fed from CSV files or SQL queries, three feed strategies
(random, circular, constant), timeout-aware execution with classified outcomes.
"""

from .exceptions import (
    ConfigurationError,
    DataSourceError,
    DataSourceNotFoundError,
    EmptyResultError,
    LoadfeedError,
    SchemaError,
    UnsupportedSourceError,
)

__all__ = [
    "__version__",
    "ConfigurationError",
    "DataSourceError",
    "DataSourceNotFoundError",
    "EmptyResultError",
    "LoadfeedError",
    "SchemaError",
    "UnsupportedSourceError",
]

__version__ = "1.0.0"
