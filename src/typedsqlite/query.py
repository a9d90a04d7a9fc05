"""
Query helpers that run one SQL statement with positional parameters.

Each helper prepares the statement, binds `*args` at positions 1..n,
steps it and finalizes it on every exit path. They add no SQL rewriting:
placeholders are whatever the engine accepts (`?`, `?NNN`).
"""
import logging
import time
from functools import wraps
from typing import TYPE_CHECKING, Any

from typedsqlite.columns import column_info, read_row
from typedsqlite.exceptions import ValidationError
from typedsqlite.options import iterdict_data_loader
from typedsqlite.statement import prepared, step_done, step_row
from typedsqlite.types import Column

from libb import attrdict

if TYPE_CHECKING:
    from typedsqlite.connection import Connection

__all__ = [
    'execute',
    'select',
    'select_column',
    'select_row',
    'select_row_or_none',
    'select_scalar',
    'select_scalar_or_none',
]

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL, parameters and timing."""
    @wraps(func)
    def wrapper(cn: 'Connection', sql: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {args}')
        try:
            return func(cn, sql, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            cn.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


@dumpsql
def execute(cn: 'Connection', sql: str, *args: Any) -> int:
    """Run a statement that returns no rows; return the affected row count.
    """
    with prepared(cn, sql) as stmt:
        stmt.bind_values(args)
        step_done(stmt)
    return cn.changes


@dumpsql
def select(cn: 'Connection', sql: str, *args: Any, **kwargs: Any) -> Any:
    """Run a query and pass its rows, as dicts, through the data loader.

    Dict keys are `Column.get_names` of the result columns, so repeated
    names such as `SELECT ?, ?` come back as `?` and `?_1`.

    The loader comes from the `data_loader` keyword, else the connection's
    options, else plain dicts.
    """
    data_loader = kwargs.pop('data_loader', None)
    if data_loader is None:
        data_loader = cn.options.data_loader if cn.options else iterdict_data_loader

    with prepared(cn, sql) as stmt:
        stmt.bind_values(args)
        cols = column_info(stmt)
        names = Column.get_names(cols)
        rows = []
        while step_row(stmt):
            rows.append(dict(zip(names, read_row(stmt))))

    logger.debug(f'Select query returned {len(rows)} rows')
    return data_loader(rows, cols, **kwargs)


def select_column(cn: 'Connection', sql: str, *args: Any) -> list[Any]:
    """Run a query and return its first column as a list.
    """
    rows = select(cn, sql, *args, data_loader=iterdict_data_loader)
    return [next(iter(row.values())) for row in rows]


def _one_row(cn: 'Connection', sql: str, *args: Any) -> list[dict]:
    data = select(cn, sql, *args, data_loader=iterdict_data_loader)
    if len(data) > 1:
        raise ValidationError(f'Expected one row, got {len(data)}')
    return data


def select_row(cn: 'Connection', sql: str, *args: Any) -> attrdict:
    """Run a query and return its only row as an attribute dictionary.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    data = _one_row(cn, sql, *args)
    if not data:
        raise ValidationError('Expected one row, got 0')
    return attrdict(data[0])


def select_row_or_none(cn: 'Connection', sql: str, *args: Any) -> attrdict | None:
    """Run a query and return its only row, or None if there are no rows.
    """
    data = _one_row(cn, sql, *args)
    return attrdict(data[0]) if data else None


def select_scalar(cn: 'Connection', sql: str, *args: Any) -> Any:
    """Run a query and return the first column of its only row.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    row = select_row(cn, sql, *args)
    result = next(iter(row.values()))
    logger.debug(f'Scalar query returned value of type {type(result).__name__}')
    return result


def select_scalar_or_none(cn: 'Connection', sql: str, *args: Any) -> Any | None:
    """Run a query and return a single scalar value or None if no rows found.
    """
    row = select_row_or_none(cn, sql, *args)
    if row is None:
        return None
    return next(iter(row.values()))
