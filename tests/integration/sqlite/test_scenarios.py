"""
End-to-end scenarios driven only through the primitive operations.
"""
import pytest
import typedsqlite as tsq
from typedsqlite import BoundParameter, CloseMode, EngineFailure, Int64, Text


@pytest.mark.sqlite
def test_create_insert_select():
    cn = tsq.open(':memory:')

    stmt = tsq.prepare(cn, 'CREATE TABLE t(a TEXT, b INTEGER)')
    tsq.step_done(stmt)
    tsq.finalize(stmt)

    stmt = tsq.prepare(cn, 'INSERT INTO t VALUES(?, ?)')
    tsq.bind_text(stmt, 1, 'hello')
    tsq.bind_int64(stmt, 2, 42)
    tsq.step_done(stmt)
    tsq.finalize(stmt)

    stmt = tsq.prepare(cn, 'SELECT a, b FROM t')
    assert tsq.step_row(stmt) is True
    assert tsq.column_text(stmt, 0) == 'hello'
    assert tsq.column_int64(stmt, 1) == 42
    assert tsq.step_row(stmt) is False
    tsq.finalize(stmt)

    tsq.close(cn, CloseMode.GRACEFUL)
    assert cn.closed


@pytest.mark.sqlite
def test_select_unbound_parameter():
    cn = tsq.open(':memory:')
    stmt = tsq.prepare(cn, 'SELECT ?')
    assert tsq.step_row(stmt) is True
    assert tsq.column_text_nullable(stmt, 0) is None
    tsq.finalize(stmt)
    tsq.close(cn)


@pytest.mark.sqlite
def test_invalid_sql_returns_no_statement():
    cn = tsq.open(':memory:')
    with pytest.raises(EngineFailure):
        tsq.prepare(cn, 'CREATE TABLE (')
    # nothing was left unfinalized, so a graceful close succeeds
    tsq.close(cn, CloseMode.GRACEFUL)
    assert cn.closed


@pytest.mark.sqlite
def test_reuse_connection_for_many_statements(db_file):
    """Data written through one connection is visible to the next"""
    with tsq.open(db_file) as cn:
        with tsq.prepared(cn, 'CREATE TABLE kv(k TEXT PRIMARY KEY, v INTEGER)') as stmt:
            stmt.step_done()
        for i, key in enumerate(['a', 'b', 'c']):
            with tsq.prepared(cn, 'INSERT INTO kv VALUES(?, ?)') as stmt:
                tsq.bind_all(stmt, [BoundParameter(1, Text(key)), BoundParameter(2, Int64(i))])
                stmt.step_done()

    with tsq.open(db_file) as cn:
        with tsq.prepared(cn, 'SELECT k, v FROM kv ORDER BY k') as stmt:
            assert list(stmt) == [('a', 0), ('b', 1), ('c', 2)]


@pytest.mark.sqlite
def test_transaction_statements(cn):
    """Transaction control is plain SQL stepped to completion"""
    cn.execute('CREATE TABLE t(a INTEGER)')
    for sql in ('BEGIN', 'INSERT INTO t VALUES(1)', 'ROLLBACK'):
        with tsq.prepared(cn, sql) as stmt:
            tsq.step_done(stmt)
    assert cn.select_scalar('SELECT count(*) FROM t') == 0
