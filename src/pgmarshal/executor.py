"""
Command execution over the extended-query protocol.

``execute`` never raises for execution problems: it returns an invalid
``Result`` and a message, and logs the message as a warning.
"""
import codecs
import logging
import time
from functools import wraps
from typing import Any

import psycopg
from pgmarshal.result import Result
from pgmarshal.sql import Sql
from psycopg import pq

logger = logging.getLogger(__name__)

__all__ = ['execute', 'error_message']

_OK_STATUSES = (pq.ExecStatus.COMMAND_OK, pq.ExecStatus.TUPLES_OK)


def _report(message: str) -> tuple[Result, str]:
    logger.warning(message)
    return Result(), message


def _pgconn(conn: Any) -> Any:
    """Return the libpq connection behind ``conn``."""
    return getattr(conn, 'pgconn', conn)


def _codec(conn: Any, sql: Sql) -> str:
    """Return the text codec of ``conn``, or of ``sql`` for a bare handle."""
    encoding = getattr(conn, 'encoding', None)
    return encoding if isinstance(encoding, str) else sql.encoding


def _same_codec(a: str, b: str) -> bool:
    return codecs.lookup(a).name == codecs.lookup(b).name


def error_message(pgconn: Any) -> str:
    """Describe what is wrong with a libpq connection, or '' if it is usable.
    """
    message = ''
    if pgconn is None:
        message = 'PgClient - invalid connection handle'
    elif pgconn.status != pq.ConnStatus.OK:
        message = f'PGconn - {pgconn.get_error_message()}'

    if message:
        logger.warning(message)

    return message


def timed(func):
    """Decorator for recording query time on the calling connection."""
    @wraps(func)
    def wrapper(conn: Any, sql: Sql, *args: Any, **kwargs: Any):
        start = time.time()
        try:
            return func(conn, sql, *args, **kwargs)
        finally:
            elapsed = time.time() - start
            if hasattr(conn, 'addcall'):
                conn.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


@timed
def execute(conn: Any, sql: Sql) -> tuple[Result, str | None]:
    """Submit ``sql`` and return its result, requesting binary-format rows.

    Args:
        conn: a ``psycopg.pq.PGconn`` or an object exposing one as ``pgconn``
            (``psycopg.Connection``, ``pgmarshal.Connection``). When it has an
            ``encoding``, ``sql`` must have been built with the same codec and
            text results are decoded with it.
        sql: the command to run

    Returns
        ``(Result, None)`` on success, ``(invalid Result, message)`` otherwise
    """
    pgconn = _pgconn(conn)
    if pgconn is None:
        return _report('PgClient - invalid connection handle')

    if not sql.valid():
        return _report('Sql - Too many parameters')

    encoding = _codec(conn, sql)
    if not _same_codec(sql.encoding, encoding):
        return _report(f'Sql - encoded as {sql.encoding}, connection uses {encoding}')

    params = sql.params
    is_params = params.size() > 0

    sql.debug()

    try:
        pgresult = pgconn.exec_params(
            sql.command,
            params.params if is_params else None,
            None,
            params.formats if is_params else None,
            pq.Format.BINARY,
            )
    except psycopg.OperationalError as err:
        logger.debug(f'exec_params failed: {err}')
        pgresult = None

    if pgresult is None:
        return _report('PGresult - invalid result handle')

    if pgresult.status not in _OK_STATUSES:
        message = f'PGresult - {pgresult.get_error_message(encoding)}'
        pgresult.clear()
        return _report(message)

    return Result(pgresult, encoding), None
