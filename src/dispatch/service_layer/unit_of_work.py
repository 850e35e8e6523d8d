import abc

import sqlalchemy as sa
from sqlalchemy.engine import Engine, Connection

from dispatch import config
from dispatch.adapters import repository


def default_engine() -> Engine:
    return sa.create_engine(config.get_postgres_uri())


class AbstractUnitOfWork(abc.ABC):
    batches: repository.AbstractRepository

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.rollback()

    @abc.abstractmethod
    def commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):

    def __init__(self, engine: Engine = None):
        self.engine = engine if engine is not None else default_engine()

    def __enter__(self):
        self.connection: Connection = self.engine.connect()
        self.transaction = self.connection.begin()
        self.batches = repository.SqlAlchemyRepository(self.connection)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.connection.close()

    def commit(self):
        self.transaction.commit()

    def rollback(self):
        # no-op once committed
        if self.transaction.is_active:
            self.transaction.rollback()
