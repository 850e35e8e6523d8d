import pytest
import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from dispatch.adapters.db_tables import metadata


@pytest.fixture(name='engine')
def engine_factory():
    engine = sa.create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def connection(engine):
    with engine.connect() as connection:
        yield connection
