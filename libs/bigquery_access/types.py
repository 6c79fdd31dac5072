"""
BigQuery type to SQL type mapping used for column metadata.

The remote reports both standard SQL names (INT64, FLOAT64, BOOL, STRUCT) and
legacy names (INTEGER, FLOAT, BOOLEAN, RECORD); everything is normalized to
the standard names before mapping.
"""

import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any


class SqlType(IntEnum):
    """java.sql.Types codes, as expected by JDBC-style catalog consumers."""

    BIT = -7
    BIGINT = -5
    VARBINARY = -3
    OTHER = 1111
    NUMERIC = 2
    DOUBLE = 8
    VARCHAR = 12
    BOOLEAN = 16
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    STRUCT = 2002
    ARRAY = 2003


_LEGACY_NAMES = {
    "INTEGER": "INT64",
    "FLOAT": "FLOAT64",
    "BOOLEAN": "BOOL",
    "RECORD": "STRUCT",
    "DECIMAL": "NUMERIC",
    "BIGDECIMAL": "BIGNUMERIC",
}

_SQL_TYPES = {
    "STRING": SqlType.VARCHAR,
    "BYTES": SqlType.VARBINARY,
    "INT64": SqlType.BIGINT,
    "FLOAT64": SqlType.DOUBLE,
    "NUMERIC": SqlType.NUMERIC,
    "BIGNUMERIC": SqlType.NUMERIC,
    "BOOL": SqlType.BOOLEAN,
    "TIMESTAMP": SqlType.TIMESTAMP,
    "DATETIME": SqlType.TIMESTAMP,
    "DATE": SqlType.DATE,
    "TIME": SqlType.TIME,
    "GEOGRAPHY": SqlType.VARCHAR,
    "JSON": SqlType.VARCHAR,
    "INTERVAL": SqlType.VARCHAR,
    "STRUCT": SqlType.STRUCT,
    "ARRAY": SqlType.ARRAY,
}

# Maximum display size per type; text-like types share the 2 MiB row limit
_COLUMN_SIZES = {
    "STRING": 2097152,
    "BYTES": 10485760,
    "INT64": 19,
    "FLOAT64": 15,
    "NUMERIC": 38,
    "BIGNUMERIC": 76,
    "BOOL": 1,
    "DATE": 10,
    "TIME": 12,
    "DATETIME": 26,
    "TIMESTAMP": 26,
    "GEOGRAPHY": 2097152,
    "JSON": 2097152,
    "INTERVAL": 2097152,
}

_DECIMAL_DIGITS = {
    "NUMERIC": 9,
    "BIGNUMERIC": 38,
    "FLOAT64": 15,
}


def normalize_type_name(type_name: str | None) -> str:
    """Return the standard SQL spelling of a BigQuery type name."""
    if not type_name:
        return "STRING"
    upper = type_name.strip().upper()
    return _LEGACY_NAMES.get(upper, upper)


def to_sql_type(type_name: str | None, mode: str | None = None) -> SqlType:
    """Map a BigQuery field type (and mode) to a SQL type code."""
    if mode and mode.upper() == "REPEATED":
        return SqlType.ARRAY
    return _SQL_TYPES.get(normalize_type_name(type_name), SqlType.OTHER)


def column_size(type_name: str | None) -> int:
    return _COLUMN_SIZES.get(normalize_type_name(type_name), 0)


def decimal_digits(type_name: str | None) -> int:
    return _DECIMAL_DIGITS.get(normalize_type_name(type_name), 0)


def display_type_name(type_name: str | None, mode: str | None = None) -> str:
    """Type name as shown in column metadata, e.g. ``ARRAY<STRING>``."""
    name = normalize_type_name(type_name)
    if mode and mode.upper() == "REPEATED":
        return f"ARRAY<{name}>"
    return name


def parameter_type_name(value: Any) -> str:
    """
    Determine the BigQuery type of a query parameter from its Python value.

    ``bool`` is checked before ``int`` and ``datetime`` before ``date`` because
    of subclassing. Naive datetimes map to DATETIME, aware ones to TIMESTAMP.
    Anything unrecognized (including None) is sent as STRING.
    """
    if isinstance(value, bool):
        return "BOOL"
    elif isinstance(value, int):
        return "INT64"
    elif isinstance(value, float):
        return "FLOAT64"
    elif isinstance(value, Decimal):
        return "NUMERIC"
    elif isinstance(value, bytes | bytearray):
        return "BYTES"
    elif isinstance(value, datetime.datetime):
        return "TIMESTAMP" if value.tzinfo is not None else "DATETIME"
    elif isinstance(value, datetime.date):
        return "DATE"
    elif isinstance(value, datetime.time):
        return "TIME"
    else:
        return "STRING"
