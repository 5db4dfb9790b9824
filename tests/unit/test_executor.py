"""Unit tests for command execution."""
import logging

from pgmarshal.executor import error_message, execute
from pgmarshal.sql import Sql
from pgmarshal.types import Int32
from psycopg import pq
from tests.fixtures.values import int4


class TestExecute:

    def test_success(self, make_pgconn, make_pgresult):
        pgresult = make_pgresult([[int4(42)]], fields=[('answer', 23)])
        conn = make_pgconn(result=pgresult)

        res, error = execute(conn, Sql('SELECT $1::int').arg(42))

        assert error is None
        assert res.valid()
        assert res.value(0, 0, Int32) == 42

    def test_wire_call(self, make_pgconn, make_pgresult):
        conn = make_pgconn(result=make_pgresult())
        execute(conn, Sql('INSERT INTO t VALUES ($1, $2)').arg('ok').arg(b'\x00\x01'))

        call = conn.calls[0]
        assert call['command'] == b'INSERT INTO t VALUES ($1, $2)'
        assert list(call['param_values']) == [b'ok', b'\x00\x01']
        assert call['param_types'] is None
        assert list(call['param_formats']) == [0, 1]
        assert call['result_format'] == pq.Format.BINARY

    def test_no_parameters(self, make_pgconn, make_pgresult):
        conn = make_pgconn(result=make_pgresult(status=pq.ExecStatus.COMMAND_OK))
        res, error = execute(conn, Sql('VACUUM'))

        assert error is None
        assert res.valid()
        assert conn.calls[0]['param_values'] is None
        assert conn.calls[0]['param_formats'] is None

    def test_invalid_command_is_not_sent(self, make_pgconn, caplog):
        conn = make_pgconn()
        sql = Sql('INSERT INTO t VALUES ($1, $2)').arg('a').arg('')

        with caplog.at_level(logging.WARNING, logger='pgmarshal.executor'):
            res, error = execute(conn, sql)

        assert not res.valid()
        assert error == 'Sql - Too many parameters'
        assert conn.calls == []
        assert 'Sql - Too many parameters' in caplog.text

    def test_missing_connection(self):
        res, error = execute(None, Sql('SELECT 1'))
        assert not res.valid()
        assert error == 'PgClient - invalid connection handle'

    def test_null_result_handle(self, make_pgconn):
        conn = make_pgconn(fail=True)
        res, error = execute(conn, Sql('SELECT 1'))
        assert not res.valid()
        assert error == 'PGresult - invalid result handle'

    def test_none_result_handle(self, make_pgconn):
        conn = make_pgconn(result=None)
        res, error = execute(conn, Sql('SELECT 1'))
        assert error == 'PGresult - invalid result handle'

    def test_server_error(self, make_pgconn, make_pgresult):
        pgresult = make_pgresult(status=pq.ExecStatus.FATAL_ERROR,
                                 error='отношение "t" не существует'.encode('cp1251'))
        conn = make_pgconn(result=pgresult)

        res, error = execute(conn, Sql('SELECT * FROM t'))

        assert not res.valid()
        assert error == 'PGresult - отношение "t" не существует'
        assert pgresult.cleared == 1

    def test_logs_rendered_command(self, make_pgconn, make_pgresult, caplog):
        conn = make_pgconn(result=make_pgresult())
        with caplog.at_level(logging.DEBUG, logger='pgmarshal'):
            execute(conn, Sql('SELECT * FROM t WHERE name = $1').arg('bob'))
        assert "SELECT * FROM t WHERE name = bob" in caplog.text
        assert 'Query time' in caplog.text

    def test_logs_even_when_server_fails(self, make_pgconn, make_pgresult, caplog):
        conn = make_pgconn(result=make_pgresult(status=pq.ExecStatus.FATAL_ERROR, error=b'boom'))
        with caplog.at_level(logging.DEBUG, logger='pgmarshal'):
            execute(conn, Sql('SELECT $1').arg('x'))
        assert 'SELECT x' in caplog.text
        assert 'PGresult - boom' in caplog.text

    def test_wrapped_connection(self, make_pgconn, make_pgresult):
        """Objects exposing .pgconn are unwrapped and get timing recorded"""
        class Wrapper:
            def __init__(self, pgconn):
                self.pgconn = pgconn
                self.elapsed = []

            def addcall(self, elapsed):
                self.elapsed.append(elapsed)

        wrapper = Wrapper(make_pgconn(result=make_pgresult()))
        res, error = execute(wrapper, Sql('SELECT 1'))
        assert error is None
        assert len(wrapper.elapsed) == 1


class TestErrorMessage:

    def test_ok(self, make_pgconn):
        assert error_message(make_pgconn()) == ''

    def test_missing(self):
        assert error_message(None) == 'PgClient - invalid connection handle'

    def test_bad_status(self, make_pgconn):
        conn = make_pgconn(status=pq.ConnStatus.BAD, error='connection refused')
        assert error_message(conn) == 'PGconn - connection refused'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
