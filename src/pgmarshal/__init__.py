"""
Parameter marshaling and binary result cursors for PostgreSQL's extended
query protocol.

Commands are built with ``Sql(template).arg(value)...``, run with
``execute(conn, sql)`` or ``Connection.exec(sql)``, and read through
``Result`` / ``Row`` / ``RowColumn`` cursors that decode binary cells into
the requested Python type.
"""
__version__ = '0.1.0'

from typing import Any

from pgmarshal.connection import Connection, connect
from pgmarshal.decode import PG_EPOCH, decode, zero_value
from pgmarshal.exceptions import ConnectionFailure, DatabaseError, ValidationError
from pgmarshal.exceptions import DbConnectionError, OperationalError
from pgmarshal.exceptions import ProgrammingError, QueryError
from pgmarshal.exceptions import TypeConversionError
from pgmarshal.executor import execute
from pgmarshal.options import ConnectionOptions
from pgmarshal.params import SqlParameterList
from pgmarshal.result import Result, Row, RowColumn
from pgmarshal.sql import MAX_PARAMETERS, Sql
from pgmarshal.types import Column, Float32, Float64, Int16, Int32, Int64
from pgmarshal.types import UInt32


def select_row(cn: Connection, sql: Sql) -> Row:
    """Execute a query and return a single row.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    return cn.select_row(sql)


def select_scalar(cn: Connection, sql: Sql, target: type) -> Any:
    """Execute a query and return a single value decoded as ``target``.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    return cn.select_scalar(sql, target)


def select(cn: Connection, sql: Sql, **kwargs: Any) -> Any:
    """Execute a query and load its rows with the connection's data loader.
    """
    return cn.select(sql, **kwargs)


__all__ = [
    'connect',
    'Connection',
    'ConnectionOptions',
    'execute',
    'select',
    'select_row',
    'select_scalar',
    'Sql',
    'SqlParameterList',
    'MAX_PARAMETERS',
    'Result',
    'Row',
    'RowColumn',
    'Column',
    'decode',
    'zero_value',
    'PG_EPOCH',
    'Int16',
    'Int32',
    'Int64',
    'UInt32',
    'Float32',
    'Float64',
    'DatabaseError',
    'ConnectionFailure',
    'QueryError',
    'TypeConversionError',
    'ValidationError',
    'DbConnectionError',
    'ProgrammingError',
    'OperationalError',
]
