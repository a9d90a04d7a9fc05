"""
Integration tests for the query helpers and connect().
"""
import pandas as pd
import pytest
import typedsqlite as tsq
from typedsqlite import CloseMode, EngineFailure, EngineOptions, ValidationError
from typedsqlite.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader

import config


@pytest.mark.sqlite
def test_execute_returns_changes(table_cn):
    assert table_cn.execute('UPDATE t SET b = b + 1 WHERE b IS NOT NULL') == 2
    assert tsq.execute(table_cn, 'DELETE FROM t WHERE a = ?', 'Alice') == 1


@pytest.mark.sqlite
def test_select_returns_dicts(table_cn):
    rows = table_cn.select('SELECT a, b FROM t WHERE b > ? ORDER BY b', 5)
    assert rows == [{'a': 'Alice', 'b': 10}, {'a': 'Bob', 'b': 20}]


@pytest.mark.sqlite
def test_select_empty(table_cn):
    assert tsq.select(table_cn, 'SELECT a FROM t WHERE 0') == []


@pytest.mark.sqlite
def test_select_repeated_column_names(cn):
    """Columns sharing a name are all kept, later ones suffixed"""
    assert cn.select('SELECT ?, ?', 1, 2) == [{'?': 1, '?_1': 2}]
    assert cn.select_row('SELECT 1 AS a, 2 AS a, 3 AS a_1') == {'a': 1, 'a_1': 2, 'a_1_1': 3}


@pytest.mark.sqlite
def test_select_self_join_keeps_both_sides(table_cn):
    rows = table_cn.select(
        'SELECT x.a, y.a FROM t x JOIN t y ON x.b + 10 = y.b')
    assert rows == [{'a': 'Alice', 'a_1': 'Bob'}]


@pytest.mark.parametrize('loader', [pandas_numpy_data_loader, pandas_pyarrow_data_loader])
@pytest.mark.sqlite
def test_select_repeated_column_names_frame(table_cn, loader):
    df = table_cn.select('SELECT a, b, a FROM t ORDER BY rowid', data_loader=loader)
    assert list(df.columns) == ['a', 'b', 'a_1']
    assert df.iloc[1]['a_1'] == 'Bob'
    assert df.attrs['column_types']['a_1']['position'] == 2


@pytest.mark.sqlite
def test_select_with_pandas_loader(table_cn):
    df = table_cn.select('SELECT a, b FROM t ORDER BY rowid', data_loader=pandas_numpy_data_loader)
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['a', 'b']
    assert df.iloc[0]['a'] == 'Alice'
    assert df.attrs['column_types']['b']['decltype'] == 'INTEGER'


@pytest.mark.sqlite
def test_select_row(table_cn):
    row = table_cn.select_row('SELECT a, b FROM t WHERE a = ?', 'Bob')
    assert row.a == 'Bob'
    assert row['b'] == 20

    with pytest.raises(ValidationError):
        table_cn.select_row('SELECT a FROM t')
    with pytest.raises(ValidationError):
        table_cn.select_row('SELECT a FROM t WHERE 0')


@pytest.mark.sqlite
def test_select_row_or_none(table_cn):
    assert table_cn.select_row_or_none('SELECT a FROM t WHERE 0') is None
    assert table_cn.select_row_or_none('SELECT a FROM t WHERE b = 10').a == 'Alice'


@pytest.mark.sqlite
def test_select_scalar(table_cn):
    assert table_cn.select_scalar('SELECT count(*) FROM t') == 3
    assert table_cn.select_scalar('SELECT d FROM t WHERE a = ?', 'Alice') == b'\x01'
    assert table_cn.select_scalar_or_none('SELECT b FROM t WHERE a = ?', 'nobody') is None
    assert table_cn.select_scalar_or_none('SELECT b FROM t WHERE a IS NULL') is None
    with pytest.raises(ValidationError):
        table_cn.select_scalar('SELECT b FROM t')


@pytest.mark.sqlite
def test_select_column(table_cn):
    assert table_cn.select_column('SELECT a FROM t ORDER BY rowid') == ['Alice', 'Bob', None]


@pytest.mark.sqlite
def test_query_helpers_track_calls(cn):
    assert cn.calls == 0
    cn.execute('CREATE TABLE t(a)')
    cn.select('SELECT * FROM t')
    with pytest.raises(EngineFailure):
        cn.execute('INSERT INTO missing VALUES(1)')
    assert cn.calls == 3
    assert cn.time >= 0


@pytest.mark.sqlite
def test_execute_constraint_error_is_step_error(cn):
    cn.execute('CREATE TABLE u(a UNIQUE)')
    cn.execute('INSERT INTO u VALUES(?)', 1)
    with pytest.raises(EngineFailure) as exc_info:
        cn.execute('INSERT INTO u VALUES(?)', 1)
    assert 'UNIQUE constraint failed' in exc_info.value.detail
    # the failed statement was finalized, so a graceful close succeeds
    cn.close(CloseMode.GRACEFUL)


@pytest.mark.sqlite
def test_connect_with_dict():
    cn = tsq.connect({'filename': ':memory:', 'close_mode': 'forceful'})
    assert cn.options.close_mode is CloseMode.FORCEFUL
    cn.prepare('SELECT 1')
    cn.close()
    assert cn.closed


@pytest.mark.sqlite
def test_connect_with_options(db_file):
    options = EngineOptions(filename=str(db_file))
    with tsq.connect(options) as cn:
        cn.execute('CREATE TABLE t(a)')
        assert cn.options is options
    assert db_file.exists()


@pytest.mark.sqlite
def test_connect_with_config_setting():
    cn = tsq.connect('sqlite', config=config)
    assert cn.filename == ':memory:'
    assert cn.close_mode is CloseMode.FORCEFUL
    assert cn.select_scalar('SELECT 1 + 1') == 2
    cn.close()


@pytest.mark.sqlite
def test_connect_readonly_missing_file(db_file):
    with pytest.raises(EngineFailure):
        tsq.connect({'filename': str(db_file), 'flags': tsq.OpenFlags.READONLY})
