import pytest
from sequelocity import ConnectionWrapper, DatabaseCommand, Transaction, connect
from sequelocity import create_connection
from sequelocity.connection import ConnectionState, get_engine_for_options
from sequelocity.exceptions import ConnectionFailure, TransactionError


def test_create_connection_is_unopened(sqlite_options):
    cn = create_connection(sqlite_options)
    assert isinstance(cn, ConnectionWrapper)
    assert cn.state == ConnectionState.CLOSED
    assert cn.dialect == 'sqlite'
    assert not cn.is_pooled


def test_connect_from_dict(sqlite_options):
    with connect({'drivername': 'sqlite', 'database': sqlite_options.database}) as cn:
        assert cn.is_open
    assert not cn.is_open


def test_open_is_idempotent(sqlite_options):
    cn = create_connection(sqlite_options)
    assert cn.open() is cn
    raw = cn.dbapi_connection
    cn.open()
    assert cn.dbapi_connection is raw
    cn.close()
    cn.close()
    assert cn.state == ConnectionState.CLOSED


def test_engine_is_shared(sqlite_options):
    assert get_engine_for_options(sqlite_options) is get_engine_for_options(sqlite_options)


def test_cursor_requires_open_connection(sqlite_options):
    with pytest.raises(ConnectionFailure):
        create_connection(sqlite_options).cursor()


def test_call_statistics(sqlite_options):
    cn = connect(sqlite_options)
    DatabaseCommand(cn, 'SELECT 1').execute_scalar()
    DatabaseCommand(cn, 'SELECT 2').execute_scalar()
    assert cn.calls == 2
    cn.close()


def test_foreign_keys_enabled(sqlite_options):
    with connect(sqlite_options) as cn:
        assert DatabaseCommand(cn, 'PRAGMA foreign_keys').execute_scalar() == 1


class TestTransaction:

    def test_nested_transaction_rejected(self, sqlite_options):
        with connect(sqlite_options) as cn:
            cn.begin_transaction()
            with pytest.raises(TransactionError):
                cn.begin_transaction()

    def test_closed_connection(self, sqlite_options):
        with pytest.raises(ConnectionFailure):
            Transaction(create_connection(sqlite_options)).begin()

    def test_completed_transaction(self, sqlite_options):
        with connect(sqlite_options) as cn:
            transaction = cn.begin_transaction()
            transaction.commit()
            assert not cn.in_transaction
            with pytest.raises(TransactionError):
                transaction.commit()
            with pytest.raises(TransactionError):
                transaction.begin()

    def test_close_rolls_back(self, sqlite_options):
        cn = connect(sqlite_options)
        transaction = cn.begin_transaction()
        DatabaseCommand(cn, "INSERT INTO SuperHero VALUES (3, 'Flash')").execute_non_query()
        cn.close()
        assert not transaction.is_active

        with connect(sqlite_options) as cn:
            assert DatabaseCommand(cn, 'SELECT COUNT(*) FROM SuperHero').execute_scalar() == 2

    def test_autocommit_restored(self, sqlite_options):
        with connect(sqlite_options) as cn:
            with cn.begin_transaction():
                assert cn.dbapi_connection.isolation_level == 'DEFERRED'
            assert cn.dbapi_connection.isolation_level is None
