"""
Single libpq connection with parameterized execution.

The connection is opened with ``psycopg.pq.PGconn.connect`` and switched to
the configured single-byte client encoding. Failures are recorded in
``error_message`` instead of raised; ``check()`` turns them into a
``ConnectionFailure`` for callers that prefer exceptions.

    with connect(hostname='localhost', database='test_db') as cn:
        res = cn.exec(Sql('SELECT id FROM t WHERE name = $1').arg('x'))
"""
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Self

from pgmarshal.exceptions import ConnectionFailure, QueryError, ValidationError
from pgmarshal.executor import error_message, execute
from pgmarshal.options import ConnectionOptions
from pgmarshal.result import Result, Row
from pgmarshal.sql import Sql
from psycopg import pq

logger = logging.getLogger(__name__)

__all__ = ['Connection', 'connect']


class Connection:
    """Owns one libpq connection and tracks query counts and timing.
    """

    def __init__(self, options: ConnectionOptions | None = None) -> None:
        self.options = options or ConnectionOptions()
        self._pgconn = None
        self._error_message = ''
        self.calls = 0
        self.time = 0

    def __repr__(self) -> str:
        return f'Connection(valid={self.valid()}, calls={self.calls})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()

    def __bool__(self) -> bool:
        return self.valid()

    @property
    def pgconn(self) -> Any:
        return self._pgconn

    @property
    def encoding(self) -> str:
        return self.options.codec

    @property
    def error_message(self) -> str:
        return self._error_message

    def open(self, connector: Callable[[bytes], Any] = pq.PGconn.connect) -> Self:
        """Connect using the options' conninfo and set the client encoding.
        """
        conninfo = self.options.to_conninfo()
        self._pgconn = connector(conninfo.encode())
        self._error_message = ''
        if self.validate():
            self._set_client_encoding()
            logger.debug(f'Connected to {self.options.hostname or "local socket"}/{self.options.database}')
        return self

    def _set_client_encoding(self) -> None:
        command = f"SET client_encoding TO '{self.options.client_encoding}'"
        pgresult = self._pgconn.exec_(command.encode())
        try:
            if pgresult.status != pq.ExecStatus.COMMAND_OK:
                logger.warning(f'error setting client encoding: {pgresult.get_error_message()}')
        finally:
            pgresult.clear()

    def valid(self) -> bool:
        return self._pgconn is not None and not self._error_message

    def validate(self) -> bool:
        """Re-check the connection status, keeping the first error seen.
        """
        if not self._error_message:
            self._error_message = error_message(self._pgconn)
        return self.valid()

    def check(self) -> None:
        """Raise ConnectionFailure if the connection is not usable.
        """
        if not self.validate():
            raise ConnectionFailure(self._error_message)

    def addcall(self, elapsed: float) -> None:
        self.time += elapsed
        self.calls += 1

    def sql(self, command: str | bytes) -> Sql:
        """Start a command using this connection's client encoding."""
        return Sql(command, self.encoding)

    def exec(self, sql: Sql) -> Result:
        """Execute ``sql``; on failure the message is kept in ``error_message``.
        """
        if not self.validate():
            return Result()
        result, error = execute(self, sql)
        if error:
            self._error_message = error
        return result

    def select_row(self, sql: Sql) -> Row:
        """Execute ``sql`` and return its only row.

        Raises QueryError if execution fails and ValidationError if the
        query does not return exactly one row.
        """
        result, error = execute(self, sql)
        if error:
            raise QueryError(error)
        if result.row_count() != 1:
            raise ValidationError(f'Expected one row, returned {result.row_count()}')
        return result.front()

    def select_scalar(self, sql: Sql, target: type) -> Any:
        """Execute ``sql`` and decode the first column of its only row as ``target``.
        """
        return self.select_row(sql).value(0, target)

    def select(self, sql: Sql, **kwargs: Any) -> Any:
        """Execute ``sql`` and load all rows with the configured data loader.

        Raises QueryError if execution fails.
        """
        result, error = execute(self, sql)
        if error:
            raise QueryError(error)
        with result:
            return result.load(self.options.data_loader, **kwargs)

    def close(self) -> None:
        pgconn, self._pgconn = getattr(self, '_pgconn', None), None
        if pgconn is not None:
            pgconn.finish()
            logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')


def connect(options: ConnectionOptions | dict[str, Any] | None = None,
            connector: Callable[[bytes], Any] = pq.PGconn.connect,
            **kw: Any) -> Connection:
    """Open a connection.

    Args:
        options: a ConnectionOptions, a dict of option values, or None
        connector: opens the libpq connection from a conninfo string
        **kw: option values overriding ``options``

    Returns
        Connection, which may be invalid: see ``Connection.error_message``
    """
    if isinstance(options, ConnectionOptions):
        if kw:
            options = replace(options, **kw)
    else:
        values = dict(options or {})
        values.update(kw)
        options = ConnectionOptions(**values)

    return Connection(options).open(connector)
