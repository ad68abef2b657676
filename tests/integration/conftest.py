import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from study_access_client.config import PostgresConfig, PropagationConfig
from study_access_client.db.base import Base
import study_access_client.db  # noqa: F401


@pytest.fixture(scope="session")
def postgres_config():
    """
    Поднимает PostgreSQL в Docker один раз на всю сессию.
    Без Docker интеграционные тесты пропускаются.
    """
    try:
        postgres = PostgresContainer("postgres:15")
        postgres.start()
    except Exception as e:
        pytest.skip(f"Docker is not available: {e}")

    yield PostgresConfig(
        user=postgres.username,
        password=postgres.password,
        db=postgres.dbname,
        host=postgres.get_container_host_ip(),
        port=int(postgres.get_exposed_port(5432)),
    )
    postgres.stop()


@pytest_asyncio.fixture(scope="function")
async def session_factory(postgres_config):
    """
    Создает все таблицы перед тестом и удаляет их после, для полной изоляции.
    """
    engine = create_async_engine(postgres_config.get_pg_dsn())
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def propagation_config():
    return PropagationConfig(lock_attempts=2, lock_retry_delay=0)
