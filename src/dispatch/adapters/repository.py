import abc
import typing as t

import sqlalchemy as sa

from dispatch.domain import model

from .db_tables import batches, stock_transfers


class AbstractRepository(abc.ABC):

    @abc.abstractmethod
    def add(self, batch: model.WarehouseBatch):
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, reference: str) -> t.Optional[model.WarehouseBatch]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_for_sku(self, sku: str, lock: bool = False) -> t.List[model.WarehouseBatch]:
        raise NotImplementedError

    @abc.abstractmethod
    def save(self, batch: model.WarehouseBatch):
        raise NotImplementedError

    @abc.abstractmethod
    def add_transfer(self, transfer: model.StockTransfer):
        raise NotImplementedError

    @abc.abstractmethod
    def list_transfers(self, sku: str) -> t.List[model.StockTransfer]:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):

    def __init__(self, connection: sa.engine.Connection):
        self.connection = connection

    def add(self, batch: model.WarehouseBatch):
        insert_stmt = sa.insert(batches).values({
            'reference': batch.reference,
            'sku': batch.sku,
            'quantity': batch.quantity,
            'received_date': batch.received_date,
            'expiry_date': batch.expiry_date,
        })
        result = self.connection.execute(insert_stmt)
        batch.id = result.inserted_primary_key[0]

    def get(self, reference: str) -> t.Optional[model.WarehouseBatch]:
        return next(self.select_batches(batches.c.reference == reference), None)

    def list_for_sku(self, sku: str, lock: bool = False) -> t.List[model.WarehouseBatch]:
        """
        Партии артикула в порядке поступления.
        :param lock: блокировать строки до конца транзакции (SELECT ... FOR UPDATE)
        """
        return list(self.select_batches(batches.c.sku == sku, lock=lock))

    def save(self, batch: model.WarehouseBatch):
        update_stmt = (sa.update(batches)
                       .where(batches.c.id == batch.id)
                       .values(quantity=batch.quantity))
        self.connection.execute(update_stmt)

    def add_transfer(self, transfer: model.StockTransfer):
        batch_id = (sa.select(batches.c.id)
                    .where(batches.c.reference == transfer.batch_reference)
                    .scalar_subquery())
        insert_stmt = sa.insert(stock_transfers).values({
            'batch_id': batch_id,
            'sku': transfer.sku,
            'quantity': transfer.quantity,
            'destination': transfer.destination,
            'transferred_on': transfer.transferred_on,
        })
        self.connection.execute(insert_stmt)

    def list_transfers(self, sku: str) -> t.List[model.StockTransfer]:
        join_stmt = stock_transfers.join(batches, stock_transfers.c.batch_id == batches.c.id)
        select_stmt = (sa.select(batches.c.reference, stock_transfers)
                       .select_from(join_stmt)
                       .where(stock_transfers.c.sku == sku)
                       .order_by(stock_transfers.c.id))
        return [
            model.StockTransfer(row.reference, row.sku, row.quantity,
                                row.destination, row.transferred_on)
            for row in self.connection.execute(select_stmt).all()
        ]

    def select_batches(self, *condition, lock: bool = False) -> t.Iterator[model.WarehouseBatch]:
        batch_stmt = sa.select(batches).order_by(batches.c.received_date, batches.c.id)
        if condition:
            batch_stmt = batch_stmt.where(*condition)
        if lock:
            batch_stmt = batch_stmt.with_for_update()
        for row in self.connection.execute(batch_stmt).all():
            yield model.WarehouseBatch(
                ref=row.reference, sku=row.sku, qty=row.quantity,
                received_date=row.received_date, expiry_date=row.expiry_date,
                id=row.id,
            )
