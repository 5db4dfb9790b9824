"""
Result cursor over a binary-format query result.

``Result`` owns the driver result and frees it exactly once. ``Row`` and
``RowColumn`` are index cursors that refer back to their ``Result``; they
copy nothing. Once the ``Result`` is closed every cursor reads zero values.

    res, error = execute(conn, Sql('SELECT id, name FROM t'))
    for row in res:
        row.value(0, Int32), row.column(1).to(str)
"""
import logging
from collections.abc import Callable, Iterator
from typing import Any, Self
from pgmarshal.decode import decode, zero_value
from pgmarshal.options import iterdict_data_loader
from pgmarshal.params import DEFAULT_CODEC
from pgmarshal.types import Column

logger = logging.getLogger(__name__)

__all__ = ['Result', 'Row', 'RowColumn']


class RowColumn:
    """Cursor on a single cell.
    """

    def __init__(self, result: 'Result | None', row: int, column: int) -> None:
        self.result = result
        self.row = row
        self.column = column

    def __repr__(self) -> str:
        return f'RowColumn(row={self.row}, column={self.column})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowColumn):
            return NotImplemented
        return self.column == other.column

    def _in_range(self) -> bool:
        return (
            self.result is not None
            and self.result.valid()
            and 0 <= self.row < self.result.row_count()
            and 0 <= self.column < self.result.column_count()
            )

    def to(self, target: type) -> Any:
        """Decode this cell as ``target``, or its zero value if out of range.
        """
        if not self._in_range():
            return zero_value(target)
        return decode(target, self.result.get(), self.row, self.column,
                      self.result.encoding)

    def is_null(self) -> bool:
        if not self._in_range():
            return True
        return self.result.get().get_value(self.row, self.column) is None

    def next(self) -> Self:
        self.column += 1
        return self


class Row:
    """Cursor on a result row.
    """

    def __init__(self, result: 'Result | None' = None, row: int = 0) -> None:
        self.result = result
        self.row = row

    def __repr__(self) -> str:
        return f'Row(row={self.row}, size={self.size()})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.row == other.row

    def __len__(self) -> int:
        return self.size()

    def __getitem__(self, column: int) -> RowColumn:
        return self.at(column)

    def __iter__(self) -> Iterator[RowColumn]:
        for column in range(self.size()):
            yield self.at(column)

    def size(self) -> int:
        return self.result.column_count() if self.result is not None else 0

    def empty(self) -> bool:
        return self.size() == 0

    def valid(self) -> bool:
        return not self.empty()

    def at(self, column: int) -> RowColumn:
        return RowColumn(self.result, self.row, column)

    column = at

    def value(self, column: int, target: type | None = None) -> Any:
        """Return the cell cursor, or the decoded cell when ``target`` is given.
        """
        if target is None:
            return self.at(column)
        return self.at(column).to(target)

    def begin(self) -> RowColumn:
        return self.at(0)

    def end(self) -> RowColumn:
        return self.at(self.size())

    def next(self) -> Self:
        self.row += 1
        return self

    def to_dict(self) -> dict[str, Any]:
        """Decode every cell by its column's server type.
        """
        if self.result is None:
            return {}
        return {
            col.name: self.at(j).to(col.python_type)
            for j, col in enumerate(self.result.columns)
            }


class Result:
    """Exclusive owner of one driver result.

    Row and column counts are read once at construction. A result whose
    driver reports negative counts is discarded.
    """

    _pgresult = None

    def __init__(self, pgresult: Any = None, encoding: str = DEFAULT_CODEC) -> None:
        self.encoding = encoding
        self._pgresult = None
        self._n_rows = 0
        self._n_columns = 0
        self._columns: list[Column] | None = None

        if pgresult is not None:
            n_rows, n_columns = pgresult.ntuples, pgresult.nfields
            if n_rows < 0 or n_columns < 0:
                logger.warning('invalid SQL result: tuples count or fields count < 0')
                pgresult.clear()
            else:
                self._pgresult = pgresult
                self._n_rows = n_rows
                self._n_columns = n_columns

    def __repr__(self) -> str:
        return f'Result(valid={self.valid()}, rows={self._n_rows}, columns={self._n_columns})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()

    def __copy__(self):
        raise TypeError('Result owns its driver result and cannot be copied')

    def __deepcopy__(self, memo):
        raise TypeError('Result owns its driver result and cannot be copied')

    def __bool__(self) -> bool:
        return self.valid()

    def __len__(self) -> int:
        return self._n_rows

    def __getitem__(self, index: int) -> Row:
        return Row(self, index)

    def __iter__(self) -> Iterator[Row]:
        for index in range(self._n_rows):
            yield Row(self, index)

    def get(self) -> Any:
        return self._pgresult

    def valid(self) -> bool:
        return self._pgresult is not None

    def release(self) -> Any:
        """Give up ownership of the driver result and return it.
        """
        pgresult, self._pgresult = self._pgresult, None
        return pgresult

    def close(self) -> None:
        pgresult = self.release()
        if pgresult is not None:
            pgresult.clear()

    def row_count(self) -> int:
        return self._n_rows

    def column_count(self) -> int:
        return self._n_columns

    size = row_count

    def empty(self) -> bool:
        return self._n_rows == 0

    def at(self, index: int) -> Row:
        return Row(self, index) if 0 <= index < self._n_rows else Row()

    row = at

    def value(self, row: int, column: int, target: type | None = None) -> Any:
        return self.at(row).value(column, target)

    def front(self) -> Row:
        return self.at(0)

    def back(self) -> Row:
        return self.at(self._n_rows - 1)

    def begin(self) -> Row:
        return Row(self, 0)

    def end(self) -> Row:
        return Row(self, self._n_rows)

    @property
    def columns(self) -> list[Column]:
        """Column metadata, read from the driver result on first use.
        """
        if self._columns is None:
            if self._pgresult is None:
                return []
            self._columns = [
                Column.from_result(self._pgresult, j, self.encoding)
                for j in range(self._n_columns)
                ]
        return self._columns

    def to_dicts(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self]

    def load(self, data_loader: Callable[..., Any] | None = None, **kwargs: Any) -> Any:
        """Decode all rows and pass them to ``data_loader`` with the column metadata.
        """
        data_loader = data_loader or iterdict_data_loader
        return data_loader(self.to_dicts(), self.columns, **kwargs)
