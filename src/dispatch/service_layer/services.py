import logging
import typing as t
from datetime import date
from decimal import Decimal

from dispatch import config
from dispatch.domain import model
from dispatch.domain.model import BatchAllocation, InvalidArgument
from dispatch.domain.strategies import StockSelectionStrategy, get_strategy
from dispatch.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class InvalidSku(Exception):
    pass


class InsufficientStock(Exception):
    pass


def add_batch(
        reference: str, sku: str, qty, received_date: date,
        expiry_date: t.Optional[date], uow: AbstractUnitOfWork
):
    batch = model.WarehouseBatch(reference, sku, qty, received_date, expiry_date)
    with uow:
        uow.batches.add(batch)
        uow.commit()
    logger.info('batch %s received: %s x %s', reference, sku, batch.quantity)


def available_quantity(sku: str, uow: AbstractUnitOfWork, today: date = None) -> Decimal:
    today = today or date.today()
    with uow:
        batches = uow.batches.list_for_sku(sku)
    return sum((b.quantity for b in batches if not b.is_expired(today)), model.ZERO)


def dispatch(
        sku: str, qty, destination: str, uow: AbstractUnitOfWork,
        strategy: StockSelectionStrategy = None, today: date = None,
        allow_partial: bool = True,
) -> t.List[BatchAllocation]:
    """
    Отгрузка со склада на полку или в веб-витрину.

    Снимок остатков читается под блокировкой, стратегия выбирает партии,
    списание и записи о перемещении фиксируются в той же транзакции.
    Просроченные партии в снимок не попадают.
    """
    required = model.as_quantity(qty)
    if required <= model.ZERO:
        raise InvalidArgument('quantity must be > 0')
    if destination not in model.DESTINATIONS:
        raise InvalidArgument(f'unknown destination {destination!r}')
    strategy = strategy or get_strategy(config.get_strategy_name())
    today = today or date.today()

    with uow:
        batches = uow.batches.list_for_sku(sku, lock=True)
        if not batches:
            raise InvalidSku(f'Недопустимый артикул {sku}')

        by_id = {b.id: b for b in batches if not b.is_expired(today)}
        snapshot = [b.to_batch_info() for b in by_id.values() if b.quantity > model.ZERO]
        allocations = strategy.select_batches_for_dispatch(snapshot, required)

        allocated = model.total_allocated(allocations)
        if allocated < required:
            if not allow_partial:
                raise InsufficientStock(
                    f'Артикула {sku} недостаточно: запрошено {required}, доступно {allocated}')
            logger.warning('partial dispatch of %s: requested %s, allocated %s',
                           sku, required, allocated)

        for allocation in allocations:
            batch = by_id[allocation.batch_id]
            batch.dispatch(allocation.allocated_quantity)
            uow.batches.save(batch)
            uow.batches.add_transfer(model.StockTransfer(
                batch.reference, sku, allocation.allocated_quantity, destination, today))
        uow.commit()

    logger.info('dispatched %s x %s to %s from %s', sku, allocated, destination,
                [a.batch_id for a in allocations])
    return allocations
