import pytest
from sequelocity import DatabaseCommand, DatabaseOptions, connect
from sequelocity import get_database_command

SCHEMA = """
CREATE TABLE Customer (
    CustomerId INTEGER PRIMARY KEY AUTOINCREMENT,
    FirstName TEXT NOT NULL,
    LastName TEXT NOT NULL,
    DateOfBirth DATE
);

CREATE TABLE SuperHero (
    SuperHeroId INTEGER PRIMARY KEY,
    SuperHeroName TEXT NOT NULL
);

INSERT INTO SuperHero (SuperHeroId, SuperHeroName) VALUES
(1, 'Superman'),
(2, 'Batman');
"""


@pytest.fixture
def sqlite_options(tmp_path):
    """Options for a file-based SQLite database with the test schema.

    A file under tmp_path rather than :memory:, since every connection opened
    without a pool would otherwise see an empty database.
    """
    options = DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'test.db'))
    cn = connect(options)
    try:
        DatabaseCommand(cn, SCHEMA).execute_non_query()
    finally:
        cn.close()
    return options


@pytest.fixture
def sqlite_command(sqlite_options):
    """Command context that owns its (not yet open) connection."""
    cmd = get_database_command(sqlite_options)
    yield cmd
    cmd.dispose()
