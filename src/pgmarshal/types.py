"""
Decode targets, server type mapping and column metadata.

Fixed-width numeric targets are marker classes carrying the big-endian
``struct`` layout of the wire value; pass the class itself to
``Row.value`` / ``RowColumn.to``. The decoded value is a plain ``int`` or
``float``.
"""
import datetime
import logging
import struct
from typing import Any, Self

from psycopg.postgres import types as pg_types

logger = logging.getLogger(__name__)

__all__ = [
    'Int16',
    'Int32',
    'Int64',
    'UInt32',
    'Float32',
    'Float64',
    'Column',
    'postgres_types',
    'python_codec',
    'DEFAULT_CLIENT_ENCODING',
]


class Int16(int):
    """Signed 2-byte integer (``int2``)."""
    layout = struct.Struct('>h')


class Int32(int):
    """Signed 4-byte integer (``int4``)."""
    layout = struct.Struct('>i')


class Int64(int):
    """Signed 8-byte integer (``int8``)."""
    layout = struct.Struct('>q')


class UInt32(int):
    """Unsigned 4-byte integer (``oid``, ``xid``)."""
    layout = struct.Struct('>I')


class Float32(float):
    """IEEE single precision (``float4``)."""
    layout = struct.Struct('>f')


class Float64(float):
    """IEEE double precision (``float8``)."""
    layout = struct.Struct('>d')


NUMERIC_TYPES: dict[type, type] = {
    Int16: Int16,
    Int32: Int32,
    Int64: Int64,
    UInt32: UInt32,
    Float32: Float32,
    Float64: Float64,
    int: Int64,
    float: Float64,
}

#
# Server encoding names -> Python codecs
#

DEFAULT_CLIENT_ENCODING = 'WIN1251'

PG_ENCODINGS: dict[str, str] = {
    'WIN1250': 'cp1250',
    'WIN1251': 'cp1251',
    'WIN1252': 'cp1252',
    'WIN866': 'cp866',
    'LATIN1': 'latin-1',
    'LATIN2': 'iso8859-2',
    'LATIN9': 'iso8859-15',
    'KOI8R': 'koi8-r',
    'KOI8U': 'koi8-u',
    'ISO_8859_5': 'iso8859-5',
    'SQL_ASCII': 'ascii',
    'UTF8': 'utf-8',
}


def python_codec(pg_encoding: str) -> str:
    """Return the Python codec name for a server encoding name.

    Raises ValueError for encodings without a known codec.
    """
    key = pg_encoding.upper().replace('-', '')
    if key not in PG_ENCODINGS:
        raise ValueError(f'Unsupported client encoding: {pg_encoding}')
    return PG_ENCODINGS[key]


# Type Resolution - server type OIDs -> decode targets

_oid = lambda x: pg_types.get(x).oid

postgres_types: dict[int, type] = {}

for v in [_oid('"char"'), _oid('bpchar'), _oid('varchar'), _oid('name'),
          _oid('text'), _oid('json')]:
    postgres_types[v] = str

postgres_types[_oid('int2')] = Int16
postgres_types[_oid('int4')] = Int32
postgres_types[_oid('int8')] = Int64
postgres_types[_oid('oid')] = UInt32
postgres_types[_oid('float4')] = Float32
postgres_types[_oid('float8')] = Float64
postgres_types[_oid('bool')] = bool
postgres_types[_oid('bytea')] = bytes

for v in [_oid('timestamp'), _oid('timestamptz')]:
    postgres_types[v] = datetime.datetime


class Column:
    """Result column metadata.

    ``python_type`` is the decode target resolved from the server type OID,
    or ``bytes`` for types without a binary decoder.
    """

    def __init__(self, name: str, type_code: int | None,
                 python_type: type | None = None) -> None:
        self.name = name
        self.type_code = type_code
        self.python_type = python_type

    def __repr__(self) -> str:
        return f'Column(name={self.name!r}, type_code={self.type_code}, python_type={self.python_type})'

    @classmethod
    def from_result(cls, pgresult: Any, index: int, encoding: str = 'utf-8') -> Self:
        """Create a Column from field ``index`` of a driver result.
        """
        raw_name = pgresult.fname(index)
        name = raw_name.decode(encoding, 'replace') if raw_name is not None else f'column{index}'
        type_code = pgresult.ftype(index)
        python_type = postgres_types.get(type_code)
        if python_type is None:
            logger.debug(f'No binary decoder for type {type_code} ({name}), using bytes')
            python_type = bytes
        return cls(name, type_code, python_type)

    @staticmethod
    def get_names(columns: list['Column']) -> list[str]:
        """Get column names from a list of Columns.
        """
        return [col.name for col in columns]

    @staticmethod
    def get_column_by_name(columns: list['Column'], name: str) -> 'Column | None':
        """Find a column by name.
        """
        for col in columns:
            if col.name == name:
                return col
        return None

    @staticmethod
    def get_column_types_dict(columns: list['Column']) -> dict[str, dict[str, Any]]:
        """Map column names to their type information.
        """
        return {
            col.name: {
                'type_code': col.type_code,
                'python_type': col.python_type.__name__ if col.python_type else None,
                }
            for col in columns
            }
