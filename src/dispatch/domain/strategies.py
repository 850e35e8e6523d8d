import abc
import typing as t
from decimal import Decimal
from operator import attrgetter

from dispatch.domain.model import (
    ZERO, BatchAllocation, BatchInfo, InvalidArgument, as_quantity,
)


class StockSelectionStrategy(abc.ABC):
    """
    Политика выбора партий для отгрузки.

    Реализации не изменяют переданные партии и возвращают список
    аллокаций, сумма которых равна min(требуемое, всего доступно).
    Нехватка остатка ошибкой не является: вызывающий код сам решает,
    устраивает ли его частичная отгрузка.
    """

    @abc.abstractmethod
    def select_batches_for_dispatch(
            self, batches: t.Iterable[BatchInfo], required_quantity
    ) -> t.List[BatchAllocation]:
        raise NotImplementedError

    @staticmethod
    def validate(batches, required_quantity) -> Decimal:
        if batches is None:
            raise InvalidArgument('batches are required')
        required = as_quantity(required_quantity, 'required_quantity')
        if required <= ZERO:
            raise InvalidArgument('required_quantity must be > 0')
        return required


class FIFOWithExpiryStrategy(StockSelectionStrategy):
    """
    FIFO по дате поступления с приоритетом истекающих партий.

    На каждом шаге берётся самая старая партия с остатком, если только
    среди остальных нет партии, срок годности которой истекает раньше,
    чем у самой старой. Решение пересчитывается на каждом шаге.
    """

    def select_batches_for_dispatch(
            self, batches: t.Iterable[BatchInfo], required_quantity
    ) -> t.List[BatchAllocation]:
        remaining = self.validate(batches, required_quantity)

        # sorted() is stable and copies; the order is never touched again
        pool = sorted(batches, key=attrgetter('received_date'))
        allocations = []

        while remaining > ZERO:
            oldest = _first_available(pool)
            if oldest is None:
                break
            override = _expiry_override(pool, pool[oldest].effective_expiry)
            chosen = oldest if override is None else override

            batch = pool[chosen]
            take = min(remaining, batch.available_quantity)
            if take <= ZERO:
                break
            allocations.append(BatchAllocation(batch.batch_id, take))

            remaining -= take
            pool[chosen] = batch.with_available_quantity(
                max(ZERO, batch.available_quantity - take))

        return allocations


def _first_available(pool: t.List[BatchInfo]) -> t.Optional[int]:
    return next(
        (i for i, b in enumerate(pool) if b.available_quantity > ZERO), None)


def _expiry_override(pool: t.List[BatchInfo], oldest_expiry) -> t.Optional[int]:
    candidates = [
        i for i, b in enumerate(pool)
        if b.available_quantity > ZERO
        and b.expiry_date is not None
        and b.expiry_date < oldest_expiry
    ]
    if not candidates:
        return None
    # min() keeps the first of equal keys, so ties go to the earlier received
    return min(candidates, key=lambda i: pool[i].expiry_date)


STRATEGIES: t.Dict[str, t.Type[StockSelectionStrategy]] = {
    'fifo_with_expiry': FIFOWithExpiryStrategy,
}


def get_strategy(name: str) -> StockSelectionStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise InvalidArgument(f'unknown stock selection strategy {name!r}')
