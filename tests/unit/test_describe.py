import types
from dataclasses import dataclass, field
from typing import ClassVar

import pytest
from models import Address, Customer, CustomerWithAddress, Hero, HeroRow, Villain
from sequelocity.describe import describe, insert_values, is_complex_type
from sequelocity.describe import is_loosely_typed, table_name_for
from sequelocity.exceptions import ArgumentError


def test_dataclass_members_in_field_order():
    assert [m.name for m in describe(Customer)] == [
        'CustomerId', 'FirstName', 'LastName', 'DateOfBirth']


def test_named_tuple_members_in_field_order():
    members = describe(HeroRow)
    assert [m.name for m in members] == ['SuperHeroId', 'SuperHeroName']
    assert all(m.has_default for m in members)


def test_column_override_from_field():
    members = {m.name: m for m in describe(Hero)}
    assert members['hero_id'].column == 'SuperHeroId'
    assert members['name'].column == 'SuperHeroName'


def test_plain_class_members():
    members = describe(Villain)
    assert [m.name for m in members] == ['VillainId', 'Name']
    assert all(m.has_default for m in members)


def test_columns_mapping_on_class():
    class Sidekick:
        __columns__ = {'sidekick_id': 'SidekickId'}
        sidekick_id: int = 0

    assert describe(Sidekick)[0].column == 'SidekickId'


def test_private_and_classvar_members_skipped():
    class Registry:
        count: ClassVar[int] = 0
        _secret: str = ''
        name: str = ''

        def greet(self):
            return self.name

    assert [m.name for m in describe(Registry)] == ['name']


def test_base_class_members_come_first():
    class Base:
        Id: int = 0

    class Child(Base):
        Name: str = ''

    assert [m.name for m in describe(Child)] == ['Id', 'Name']


def test_settable_property_is_a_member():
    class WithProperty:
        def __init__(self):
            self._name = None

        @property
        def Name(self) -> str:
            return self._name

        @Name.setter
        def Name(self, value):
            self._name = value

        @property
        def ReadOnly(self) -> int:
            return 1

    members = describe(WithProperty)
    assert [m.name for m in members] == ['Name']
    assert members[0].annotation is str


def test_init_false_field():
    @dataclass
    class Computed:
        Id: int = 0
        Total: int = field(init=False, default=0)

    members = {m.name: m for m in describe(Computed)}
    assert not members['Total'].init


def test_describe_requires_a_class():
    with pytest.raises(ArgumentError):
        describe(Customer())


def test_complex_members():
    assert is_complex_type(Address)
    assert is_complex_type(Address | None)
    assert not is_complex_type(int)
    members = {m.name: m for m in describe(CustomerWithAddress)}
    assert members['HomeAddress'].is_complex
    assert members['HomeAddress'].nullable
    assert not members['FirstName'].is_complex


class TestInsertSources:

    def test_loosely_typed(self):
        assert is_loosely_typed({'a': 1})
        assert is_loosely_typed(types.SimpleNamespace(a=1))
        assert not is_loosely_typed(Customer())

    def test_table_name_from_type(self):
        assert table_name_for(Customer()) == 'Customer'

    def test_table_name_attribute(self):
        class Row:
            __tablename__ = 'Rows'
            Id: int = 0

        assert table_name_for(Row()) == 'Rows'

    def test_insert_values_use_column_overrides(self):
        assert insert_values(Hero(hero_id=3, name='Flash')) == [
            ('SuperHeroId', 3), ('SuperHeroName', 'Flash')]

    def test_insert_values_from_mapping(self):
        assert insert_values({'Name': 'Flash'}) == [('Name', 'Flash')]

    def test_insert_values_include_instance_attributes(self):
        villain = Villain()
        villain.Lair = 'Arctic'
        assert ('Lair', 'Arctic') in insert_values(villain)
