import datetime
import pathlib
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa
from pgmarshal.types import DEFAULT_CLIENT_ENCODING, NUMERIC_TYPES, Column, Float32
from pgmarshal.types import Float64, Int16, Int32, Int64, UInt32, python_codec
from psycopg.conninfo import make_conninfo

__all__ = [
    'ConnectionOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]


#
# Decode targets -> DataFrame column types
#

_NUMPY_DTYPES: dict[type, str] = {
    Int16: 'int16',
    Int32: 'int32',
    Int64: 'int64',
    UInt32: 'uint32',
    Float32: 'float32',
    Float64: 'float64',
    bool: 'bool',
}

_ARROW_TYPES: dict[type, pa.DataType] = {
    Int16: pa.int16(),
    Int32: pa.int32(),
    Int64: pa.int64(),
    UInt32: pa.uint32(),
    Float32: pa.float32(),
    Float64: pa.float64(),
    bool: pa.bool_(),
    str: pa.string(),
    bytes: pa.binary(),
    datetime.datetime: pa.timestamp('ms'),
}


def _target(column: Column) -> type | None:
    return NUMERIC_TYPES.get(column.python_type, column.python_type)


def iterdict_data_loader(data, column_info, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def _empty_dataframe(columns, dtypes) -> pd.DataFrame:
    """Create empty DataFrame with column metadata and typed columns."""
    df = pd.DataFrame({
        col.name: pd.Series(dtype=dtypes.get(col.name, object))
        for col in columns
        })
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Numeric and boolean columns get the NumPy dtype of their server type
    (``int4`` -> ``int32``); other columns are left to pandas inference.
    Always returns a DataFrame, with columns preserved for empty results.
    """
    dtypes = {
        col.name: _NUMPY_DTYPES[_target(col)]
        for col in columns
        if _target(col) in _NUMPY_DTYPES
        }
    if not data:
        return _empty_dataframe(columns, dtypes)

    df = pd.DataFrame.from_records(list(data), columns=Column.get_names(columns))
    if dtypes:
        df = df.astype(dtypes)
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Each column is built as an Arrow array of its server type, so
    ``timestamp`` stays at millisecond resolution and ``bytea`` stays binary.
    Always returns a DataFrame, with columns preserved for empty results.
    """
    arrow_types = {col.name: _ARROW_TYPES.get(_target(col)) for col in columns}
    if not data:
        return _empty_dataframe(columns, {
            name: pd.ArrowDtype(t) for name, t in arrow_types.items() if t is not None
            })

    column_names = Column.get_names(columns)
    arrays = [
        pa.array([row[name] for row in data], type=arrow_types[name])
        for name in column_names
        ]
    df = pa.table(arrays, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def _scriptname(task: str | None = None) -> str:
    """Name of the running script without its extension, or ''."""
    task = task or (sys.argv[0] if sys.argv else '')
    if not task:
        return ''
    return pathlib.Path(task).stem


@dataclass
class ConnectionOptions:
    """Options

    ``client_encoding`` is the server-side name of the single-byte encoding
    text parameters and text results use (default ``WIN1251``).
    """
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    client_encoding: str = DEFAULT_CLIENT_ENCODING
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        self.codec = python_codec(self.client_encoding)
        if self.port < 0:
            raise ValueError(f'port must be non-negative, got {self.port}')
        if self.timeout < 0:
            raise ValueError(f'timeout must be non-negative, got {self.timeout}')
        self.appname = self.appname or _scriptname() or 'python_console'
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader

    def to_conninfo(self) -> str:
        """Build a libpq connection string from the set options.
        """
        params = {
            'host': self.hostname,
            'user': self.username,
            'password': self.password,
            'dbname': self.database,
            'port': self.port or None,
            'connect_timeout': self.timeout or None,
            'application_name': self.appname,
            }
        return make_conninfo(**{k: v for k, v in params.items() if v is not None})
