"""
Exception classes for pgmarshal.

Execution failures are reported as ``(Result, message)`` pairs rather than
raised; the classes here cover caller-side errors and the explicit checking
helpers.
"""
import psycopg


class DatabaseError(Exception):
    """Base class for all pgmarshal errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining the database connection.
    """


class QueryError(DatabaseError):
    """Error in command validation or execution.
    """


class TypeConversionError(DatabaseError):
    """Error converting between Python values and the wire encoding.
    """


class ValidationError(DatabaseError):
    """Result did not have the expected shape.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    ConnectionFailure,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    )
