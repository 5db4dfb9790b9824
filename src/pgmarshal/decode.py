"""
Binary result decoding.

Every decoder takes ``(pgresult, row, column, encoding)`` and returns a
native value. Null cells, short cells and oversized cells degrade to the
target's zero value; they are never an error.
"""
import datetime
import logging
from collections.abc import Callable
from typing import Any
from pgmarshal.exceptions import TypeConversionError
from pgmarshal.params import DEFAULT_CODEC
from pgmarshal.types import NUMERIC_TYPES, Int64

logger = logging.getLogger(__name__)

__all__ = ['decode', 'zero_value', 'is_supported', 'PG_EPOCH', 'PG_INFINITY',
           'PG_NEG_INFINITY']

PG_EPOCH = datetime.datetime(2000, 1, 1)

# wire values of 'infinity' and '-infinity'
PG_INFINITY = 2**63 - 1
PG_NEG_INFINITY = -2**63

Decoder = Callable[[Any, int, int, str], Any]


def _numeric_zero(target: type) -> int | float:
    return 0.0 if issubclass(target, float) else 0


def _numeric(target: type) -> Decoder:
    layout = target.layout
    zero = _numeric_zero(target)

    def decoder(pgresult: Any, row: int, column: int, encoding: str) -> Any:
        data = pgresult.get_value(row, column)
        if data is not None and len(data) == layout.size:
            return layout.unpack(data)[0]
        return zero

    return decoder


def _text(pgresult: Any, row: int, column: int, encoding: str) -> str:
    data = pgresult.get_value(row, column)
    return data.decode(encoding, 'replace') if data is not None else ''


def _blob(pgresult: Any, row: int, column: int, encoding: str) -> bytes:
    data = pgresult.get_value(row, column)
    return bytes(data) if data is not None else b''


def _boolean(pgresult: Any, row: int, column: int, encoding: str) -> bool:
    # null is not checked separately: it reads as false
    data = pgresult.get_value(row, column)
    return bool(data) and data[0] != 0


def _timestamp(pgresult: Any, row: int, column: int, encoding: str) -> datetime.datetime:
    micros = _int64(pgresult, row, column, encoding)
    millis = abs(micros) // 1000
    if micros < 0:
        millis = -millis
    if micros in {PG_INFINITY, PG_NEG_INFINITY}:
        return datetime.datetime.max if micros > 0 else datetime.datetime.min
    try:
        return PG_EPOCH + datetime.timedelta(milliseconds=millis)
    except OverflowError:
        # beyond year 9999 or before year 1: clamp to the representable range
        logger.debug(f'timestamp out of range: {micros}us from {PG_EPOCH}')
        return datetime.datetime.max if micros > 0 else datetime.datetime.min


_int64 = _numeric(Int64)

_DECODERS: dict[type, Decoder] = {t: _numeric(target) for t, target in NUMERIC_TYPES.items()}
_DECODERS[str] = _text
_DECODERS[bytes] = _blob
_DECODERS[bool] = _boolean
_DECODERS[datetime.datetime] = _timestamp


def is_supported(target: type) -> bool:
    return target in _DECODERS


def zero_value(target: type) -> Any:
    """Return the value a decode of ``target`` falls back to.
    """
    if target is datetime.datetime:
        return PG_EPOCH
    if target in NUMERIC_TYPES:
        return _numeric_zero(target)
    if target in _DECODERS:
        return target()
    raise TypeConversionError(f'No binary decoder for {target!r}')


def decode(target: type, pgresult: Any, row: int, column: int,
           encoding: str = DEFAULT_CODEC) -> Any:
    """Decode one binary result cell as ``target``.

    Args:
        target: one of the numeric markers in ``pgmarshal.types``, ``int``,
            ``float``, ``str``, ``bytes``, ``bool`` or ``datetime.datetime``
        pgresult: driver result holding binary-format rows
        row: row number
        column: column number
        encoding: Python codec used for text cells

    Raises TypeConversionError if ``target`` has no decoder.
    """
    try:
        decoder = _DECODERS[target]
    except KeyError:
        raise TypeConversionError(f'No binary decoder for {target!r}') from None
    return decoder(pgresult, row, column, encoding)
