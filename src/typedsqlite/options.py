"""
Connection options and data loaders for `select`.

A data loader receives the fetched rows as dicts keyed by
`Column.get_names(columns)` together with the column metadata, and returns
whatever the caller wants back. The pandas loaders use each column's
declared type to pick a dtype, as long as every fetched value has that
type. The engine does not enforce declared types, so a column whose
values disagree with its declaration is left to pandas/pyarrow inference.
"""
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa
from typedsqlite.engine import ColumnType, OpenFlags
from typedsqlite.types import CloseMode, Column

from libb import ConfigOptions

__all__ = [
    'EngineOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]

_PYTHON_TYPES = {
    ColumnType.INTEGER: int,
    ColumnType.FLOAT: float,
    ColumnType.TEXT: str,
    ColumnType.BLOB: bytes,
}

_PANDAS_DTYPES = {
    ColumnType.INTEGER: 'Int64',
    ColumnType.FLOAT: 'Float64',
    ColumnType.TEXT: 'string',
}

_ARROW_TYPES = {
    ColumnType.INTEGER: pa.int64(),
    ColumnType.FLOAT: pa.float64(),
    ColumnType.TEXT: pa.string(),
    ColumnType.BLOB: pa.binary(),
}


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Rows as plain dicts, unchanged.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    return list(data)


def _declared_type(column: Column, values: list) -> ColumnType | None:
    """Affinity of `column` when every non-NULL value is of that type."""
    affinity = column.affinity
    if affinity is None:
        return None
    expected = _PYTHON_TYPES[affinity]
    if all(v is None or type(v) is expected for v in values):
        return affinity
    return None


def _column_values(data, columns) -> list[tuple[Column, str, list]]:
    return [(column, name, [row[name] for row in data])
            for column, name in zip(columns, Column.get_names(columns))]


def _finish(df: pd.DataFrame, columns) -> pd.DataFrame:
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """DataFrame with pandas nullable dtypes for declared INTEGER/REAL/TEXT columns.

    Always returns a DataFrame, never None, with columns preserved for empty
    results. Column metadata is kept in `DataFrame.attrs['column_types']`.
    """
    frame = {}
    for column, name, values in _column_values(data, columns):
        dtype = _PANDAS_DTYPES.get(_declared_type(column, values))
        if dtype is None and not values:
            dtype = object
        frame[name] = pd.Series(values, dtype=dtype)
    return _finish(pd.DataFrame(frame, columns=Column.get_names(columns)), columns)


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """DataFrame backed by Arrow arrays typed from the declared column types.

    Always returns a DataFrame, never None, with columns preserved for empty
    results.
    """
    arrays, names = [], []
    for column, name, values in _column_values(data, columns):
        arrow_type = _ARROW_TYPES.get(_declared_type(column, values))
        if arrow_type is None and not values:
            arrow_type = pa.null()
        arrays.append(pa.array(values, type=arrow_type))
        names.append(name)
    df = pa.table(arrays, names=names).to_pandas(types_mapper=pd.ArrowDtype)
    return _finish(df, columns)


@dataclass
class EngineOptions(ConfigOptions):
    """Options

    filename: database path, or `:memory:` for a private in-memory database
    flags: OpenFlags passed to sqlite3_open_v2 (default: READWRITE | CREATE)
    vfs: name of the VFS module to use (default: engine default)
    close_mode: `graceful` or `forceful`, used when closing without an explicit mode
    data_loader: converts rows fetched by `select` (default: list of dicts)
    """
    filename: str = None
    flags: int = OpenFlags.READWRITE | OpenFlags.CREATE
    vfs: str = None
    close_mode: CloseMode = CloseMode.GRACEFUL
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not self.filename:
            raise ValueError('filename is required')
        self.flags = OpenFlags(int(self.flags))
        self.close_mode = CloseMode.coerce(self.close_mode)
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader
