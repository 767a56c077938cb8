import datetime

import pytest
from models import Customer, HeroKind, SuperHero
from sequelocity.exceptions import DbCommandError, UniqueViolation

pytestmark = pytest.mark.postgres


def test_insert_round_trip(pg_command):
    clark = Customer(FirstName='Clark', LastName='Kent', DateOfBirth=datetime.date(1938, 6, 18))

    customer_id = pg_command.generate_insert(clark).execute_scalar()
    assert customer_id == 1

    stored = (pg_command
              .set_command_text('select * from "Customer" where "CustomerId" = %(id)s')
              .add_parameter('id', customer_id)
              .execute_to_object(Customer))
    assert stored == Customer(1, 'Clark', 'Kent', datetime.date(1938, 6, 18))


def test_to_list_preserves_order(pg_command):
    heroes = (pg_command
              .set_command_text('select "SuperHeroId", "SuperHeroName" from "SuperHero" order by 1')
              .execute_to_list(SuperHero))
    assert heroes == [SuperHero(1, 'Superman'), SuperHero(2, 'Batman')]


def test_case_insensitive_columns(pg_command):
    heroes = (pg_command
              .set_command_text('select "SuperHeroId" as superheroid, "SuperHeroName" as superheroname '
                                'from "SuperHero" order by 1')
              .execute_to_list(SuperHero))
    assert [h.SuperHeroName for h in heroes] == ['Superman', 'Batman']


def test_dynamic_list_uses_column_types(pg_command):
    rows = (pg_command
            .set_command_text('select "SuperHeroId", "SuperHeroName" from "SuperHero" order by 1')
            .execute_to_dynamic_list())
    assert rows[0].SuperHeroId == 1
    assert rows[1].SuperHeroName == 'Batman'


def test_enum_list(pg_command):
    kinds = (pg_command
             .set_command_text('select "SuperHeroId" from "SuperHero" order by 1')
             .execute_to_enum_list(HeroKind))
    assert kinds == [HeroKind.Alien, HeroKind.Human]


def test_like_with_literal_percent(pg_command):
    names = (pg_command
             .set_command_text("""select "SuperHeroName" from "SuperHero" where "SuperHeroName" like 'S%' and "SuperHeroId" > %(id)s""")
             .add_parameter('id', 0)
             .execute_to_primitive_list(str))
    assert names == ['Superman']


def test_batch_insert_and_count(pg_command):
    heroes = [SuperHero(3, 'Flash'), SuperHero(4, 'Aquaman')]
    assert pg_command.generate_inserts(heroes).execute_non_query() == 2
    assert pg_command.set_command_text('select count(*) from "SuperHero"').execute_scalar() == 4


def test_unique_violation(pg_command):
    pg_command.generate_insert(SuperHero(1, 'Superman'))
    with pytest.raises(UniqueViolation):
        pg_command.execute_non_query()


def test_transaction_rollback(pg_command):
    transaction = pg_command.begin_transaction()
    pg_command.set_command_text('''insert into "SuperHero" values (5, 'Cyborg')''').execute_non_query()
    transaction.rollback()
    assert pg_command.set_command_text('select count(*) from "SuperHero"').execute_scalar() == 2


def test_statement_timeout(pg_command):
    with pytest.raises(DbCommandError):
        pg_command.set_command_text('select pg_sleep(2)').set_command_timeout(0.1).execute_scalar()
