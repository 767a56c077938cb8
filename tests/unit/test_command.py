from unittest import mock

import pytest
from sequelocity import DatabaseCommand, Parameter, Transaction
from sequelocity.exceptions import ArgumentError
from tests.fixtures.mocks import FakeCursor


def test_requires_connection_wrapper():
    with pytest.raises(ArgumentError):
        DatabaseCommand('sqlite:///app.db')


def test_configuration_is_fluent(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection())
    assert cmd.set_command_text('select 1') is cmd
    assert cmd.add_parameter('Id', 1) is cmd
    assert cmd.set_command_timeout(5) is cmd


def test_append_command_text(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection(), 'select * from Hero')
    cmd.append_command_text(' where Id = %(Id)s')
    assert cmd.command_text == 'select * from Hero where Id = %(Id)s'


def test_command_text_must_be_string(create_mock_connection):
    with pytest.raises(ArgumentError):
        DatabaseCommand(create_mock_connection()).set_command_text(42)


def test_parameters(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection(), 'select 1')
    cmd.add_parameter('@Id', 1).add_parameters({'Name': 'Clark'})
    cmd.add_parameters([Parameter('Age', 30)])
    assert cmd.parameters == {'Id': 1, 'Name': 'Clark', 'Age': 30}


def test_parameter_list_expansion(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection(), 'select * from Hero where Id in (%(ids)s)')
    cmd.add_parameter_list('ids', [1, 2, 3])
    assert cmd.command_text == 'select * from Hero where Id in (%(ids_0)s, %(ids_1)s, %(ids_2)s)'
    assert cmd.parameters == {'ids_0': 1, 'ids_1': 2, 'ids_2': 3}


@pytest.mark.parametrize('values', [[], 'abc'])
def test_parameter_list_invalid_values(create_mock_connection, values):
    cmd = DatabaseCommand(create_mock_connection(), 'select * from Hero where Id in (%(ids)s)')
    with pytest.raises(ArgumentError):
        cmd.add_parameter_list('ids', values)


def test_parameter_list_without_placeholder(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection(), 'select * from Hero')
    with pytest.raises(ArgumentError):
        cmd.add_parameter_list('ids', [1])


@pytest.mark.parametrize('seconds', [-1, 'soon', True])
def test_invalid_timeout(create_mock_connection, seconds):
    with pytest.raises(ArgumentError):
        DatabaseCommand(create_mock_connection()).set_command_timeout(seconds)


def test_timeout_applied_and_reset(create_mock_connection):
    cursor = FakeCursor(rowcount=1)
    cn = create_mock_connection(cursor)
    cn.strategy = mock.MagicMock()
    cn.strategy.standardize_sql.side_effect = lambda sql: sql
    cn.strategy.apply_command_timeout.return_value = 'previous'

    DatabaseCommand(cn, 'delete from Hero').set_command_timeout(2.5).execute_non_query()

    cn.strategy.apply_command_timeout.assert_called_once_with(cursor, 2.5)
    cn.strategy.reset_command_timeout.assert_called_once_with(cursor, 'previous')


def test_transaction_from_other_connection(create_mock_connection):
    cmd = DatabaseCommand(create_mock_connection())
    other = Transaction(create_mock_connection())
    with pytest.raises(ArgumentError):
        cmd.set_transaction(other)


def test_transaction_carried_to_next_command(create_mock_connection):
    cn = create_mock_connection()
    cmd = DatabaseCommand(cn, 'delete from Hero')
    transaction = Transaction(cn)
    cmd.set_transaction(transaction)
    cmd.execute_non_query()

    cmd.set_command_text('delete from Villain')
    assert cmd.command.transaction is transaction


def test_fresh_handle_after_execution(create_mock_connection):
    cn = create_mock_connection(FakeCursor(rowcount=1))
    cn.strategy = mock.MagicMock()
    cn.strategy.standardize_sql.side_effect = lambda sql: sql
    cmd = DatabaseCommand(cn, 'delete from Hero')
    cmd.add_parameter('Id', 1).set_command_timeout(3)
    cmd.execute_non_query()

    cmd.set_command_text('delete from Villain')
    assert cmd.parameters == {}
    assert cmd.command.timeout is None


def test_dispose_closes_owned_connection(create_mock_connection):
    cn = create_mock_connection()
    with DatabaseCommand(cn, 'select 1') as cmd:
        cn.open()
    cn.close.assert_called_once()
    assert cmd.command is None


def test_dispose_leaves_borrowed_connection(create_mock_connection):
    cn = create_mock_connection(is_open=True)
    DatabaseCommand(cn, 'select 1').dispose()
    cn.close.assert_not_called()
