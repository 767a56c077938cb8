import logging
import pathlib
import sys

import docker
import pytest
from sequelocity import connect, get_database_command
from testcontainers.postgres import PostgresContainer

from libb import Setting

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.append(str(HERE.parent))
import config

logger = logging.getLogger(__name__)


def _docker_available():
    try:
        docker.from_env().ping()
    except (docker.errors.DockerException, OSError) as e:
        logger.info(f'Docker is not available: {e}')
        return False
    return True


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Testcontainers automatically:
    - Assigns a random available port
    - Waits for the database to be ready
    - Handles cleanup when the session ends
    """
    if not _docker_available():
        pytest.skip('Docker is required for PostgreSQL integration tests')

    container = PostgresContainer(
        image='postgres:16',
        username=config.postgresql.username,
        password=config.postgresql.password,
        dbname=config.postgresql.database,
    )

    try:
        container.start()

        # Update config with dynamic host/port
        Setting.unlock()
        config.postgresql.hostname = container.get_container_host_ip()
        config.postgresql.port = int(container.get_exposed_port(5432))
        Setting.lock()

        logger.info(
            f'PostgreSQL container started at '
            f'{config.postgresql.hostname}:{config.postgresql.port}'
        )

        # Verify connection works
        connect('postgresql', config=config).close()
    except Exception as e:
        logger.error(f'Error setting up postgres container: {e}')
        container.stop()
        raise

    def finalizer():
        container.stop()
        logger.info('PostgreSQL container stopped')

    request.addfinalizer(finalizer)
    return container


def stage_test_data(cmd):
    create_and_insert_data = """
drop table if exists "Customer";
drop table if exists "SuperHero";

create table "Customer" (
    "CustomerId" serial primary key,
    "FirstName" varchar(255) not null,
    "LastName" varchar(255) not null,
    "DateOfBirth" date
);

create table "SuperHero" (
    "SuperHeroId" integer primary key,
    "SuperHeroName" varchar(255) not null
);

insert into "SuperHero" ("SuperHeroId", "SuperHeroName") values
(1, 'Superman'),
(2, 'Batman');
"""
    cmd.set_command_text(create_and_insert_data).execute_non_query()


@pytest.fixture
def pg_command(psql_docker):
    """
    Command context with function scope and freshly staged test data.
    """
    cmd = get_database_command('postgresql', config=config)
    stage_test_data(cmd)
    yield cmd
    cmd.dispose()
