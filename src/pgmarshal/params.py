"""
Positional parameter list for extended-query commands.

Each accepted argument becomes one ``(payload, format)`` pair: raw bytes in
binary format, everything else as text encoded with the client codec.
Empty arguments are logged and dropped; ``Sql.valid()`` catches the
resulting placeholder mismatch before anything is sent.
"""
import datetime
import logging
from typing import Any, NamedTuple, Self

import numpy as np
from psycopg.pq import Format

logger = logging.getLogger(__name__)

__all__ = ['SqlParameterList', 'ParamFormat', 'DATETIME_FORMAT', 'DEFAULT_CODEC']

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'
DEFAULT_CODEC = 'cp1251'

BINARY_TYPES = (bytes, bytearray, memoryview)


class ParamFormat(NamedTuple):
    param: bytes
    format: int


def _unwrap_numpy(value: Any) -> Any:
    """Convert NumPy scalars to the equivalent Python value."""
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return value.astype('datetime64[us]').item()
    if isinstance(value, np.generic):
        return value.item()
    return value


class SqlParameterList:
    """Ordered parameter payloads with their parallel format tags.

    >>> params = SqlParameterList().arg('abc').arg(b'\\x00\\x01').arg(42)
    >>> params.formats
    (0, 1, 0)
    >>> params.params
    (b'abc', b'\\x00\\x01', b'42')
    """

    def __init__(self, encoding: str = DEFAULT_CODEC) -> None:
        self.encoding = encoding
        self._params: list[bytes] = []
        self._formats: list[int] = []

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self) -> str:
        return f'SqlParameterList(params={self._params!r}, formats={self._formats!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SqlParameterList):
            return NotImplemented
        return self._params == other._params and self._formats == other._formats

    def __iadd__(self, other: 'SqlParameterList') -> Self:
        self._params.extend(other._params)
        self._formats.extend(other._formats)
        return self

    def __add__(self, other: 'SqlParameterList') -> 'SqlParameterList':
        result = self.copy()
        result += other
        return result

    def copy(self) -> 'SqlParameterList':
        """Return an independent copy of this list."""
        result = SqlParameterList(self.encoding)
        result._params = list(self._params)
        result._formats = list(self._formats)
        return result

    @property
    def params(self) -> tuple[bytes, ...]:
        return tuple(self._params)

    @property
    def formats(self) -> tuple[int, ...]:
        return tuple(self._formats)

    def size(self) -> int:
        return len(self._params)

    def arg(self, value: Any) -> Self:
        """Append one argument, or nothing if it is empty.
        """
        value = _unwrap_numpy(value)

        if isinstance(value, BINARY_TYPES):
            self._append(bytes(value), Format.BINARY)
            return self

        if value is None:
            text = ''
        elif isinstance(value, str):
            text = value
        elif isinstance(value, datetime.datetime):
            text = value.strftime(DATETIME_FORMAT)
        else:
            text = str(value)

        self._append(text.encode(self.encoding, 'replace'), Format.TEXT)
        return self

    def _append(self, payload: bytes, fmt: Format) -> None:
        if not payload:
            logger.warning('error - Invalid SQL argument. Empty data')
            return
        self._params.append(payload)
        self._formats.append(int(fmt))

    def param_with_format(self) -> list[ParamFormat]:
        """Pair each payload with its format tag.
        """
        if len(self._params) != len(self._formats):
            logger.warning('invalid data')
            return []
        return [ParamFormat(p, f) for p, f in zip(self._params, self._formats)]
