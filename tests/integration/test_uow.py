from datetime import date
from decimal import Decimal

import pytest
import sqlalchemy as sa

from dispatch.domain import model
from dispatch.service_layer import services, unit_of_work


def insert_batch(connection, ref, sku, qty, received_date):
    connection.execute(
        sa.text("INSERT INTO batches (reference, sku, quantity, received_date)"
                " VALUES (:ref, :sku, :qty, :received_date)"),
        dict(ref=ref, sku=sku, qty=qty, received_date=received_date),
    )


def get_quantity(engine, ref):
    with engine.connect() as connection:
        [[qty]] = connection.execute(
            sa.text("SELECT quantity FROM batches WHERE reference=:ref"), dict(ref=ref),
        )
    return Decimal(str(qty))


def test_uow_can_retrieve_a_batch_and_dispatch_from_it(engine):
    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with uow:
        insert_batch(uow.connection, "batch1", "HIPSTER-WORKBENCH", 100, "2025-01-01")
        uow.commit()

    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with uow:
        batch = uow.batches.get("batch1")
        batch.dispatch(Decimal('10'))
        uow.batches.save(batch)
        uow.commit()

    assert get_quantity(engine, "batch1") == Decimal('90')


def test_rolls_back_uncommitted_work_by_default(engine):
    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with uow:
        insert_batch(uow.connection, "batch1", "MEDIUM-PLINTH", 100, "2025-01-01")
    with uow:
        rows = list(uow.connection.execute(sa.text('SELECT * FROM batches')))
    assert rows == []


def test_rolls_back_on_error(engine):
    class MyException(Exception):
        pass

    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with pytest.raises(MyException):
        with uow:
            insert_batch(uow.connection, "batch1", "LARGE-FORK", 100, "2025-01-01")
            raise MyException()
    with uow:
        rows = list(uow.connection.execute(sa.text('SELECT * FROM batches')))
    assert rows == []


def test_dispatch_service_persists_decrements_and_transfers(engine):
    services.add_batch("old", "PAPRIKA-JAR", '2.5', date(2025, 1, 1), None,
                       unit_of_work.SqlAlchemyUnitOfWork(engine))
    services.add_batch("fresh", "PAPRIKA-JAR", '4', date(2025, 1, 5), date(2025, 1, 20),
                       unit_of_work.SqlAlchemyUnitOfWork(engine))

    allocations = services.dispatch("PAPRIKA-JAR", '5', model.SHELF,
                                    unit_of_work.SqlAlchemyUnitOfWork(engine),
                                    today=date(2025, 1, 10))

    assert model.total_allocated(allocations) == Decimal('5')
    assert get_quantity(engine, "fresh") == Decimal('0')
    assert get_quantity(engine, "old") == Decimal('1.5')

    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with uow:
        transfers = uow.batches.list_transfers("PAPRIKA-JAR")
    assert [(t.batch_reference, t.quantity) for t in transfers] == [
        ("fresh", Decimal('4')), ("old", Decimal('1')),
    ]


def test_failed_all_or_nothing_dispatch_leaves_stock_alone(engine):
    services.add_batch("only", "PAPRIKA-JAR", 3, date(2025, 1, 1), None,
                       unit_of_work.SqlAlchemyUnitOfWork(engine))

    with pytest.raises(services.InsufficientStock):
        services.dispatch("PAPRIKA-JAR", 5, model.WEB,
                          unit_of_work.SqlAlchemyUnitOfWork(engine),
                          today=date(2025, 1, 10), allow_partial=False)

    assert get_quantity(engine, "only") == Decimal('3')


def test_sub_scale_dispatch_is_rejected_and_stock_kept(engine):
    services.add_batch("b1", "SAFFRON-PINCH", '1', date(2025, 1, 1), None,
                       unit_of_work.SqlAlchemyUnitOfWork(engine))

    with pytest.raises(model.InvalidArgument, match='decimal places'):
        services.dispatch("SAFFRON-PINCH", '0.0004', model.SHELF,
                          unit_of_work.SqlAlchemyUnitOfWork(engine), today=date(2025, 1, 10))

    assert get_quantity(engine, "b1") == Decimal('1')


def test_smallest_quantities_are_conserved_in_storage(engine):
    services.add_batch("b1", "SAFFRON-PINCH", '1', date(2025, 1, 1), None,
                       unit_of_work.SqlAlchemyUnitOfWork(engine))

    allocated = Decimal('0')
    for _ in range(3):
        allocations = services.dispatch("SAFFRON-PINCH", '0.001', model.SHELF,
                                        unit_of_work.SqlAlchemyUnitOfWork(engine),
                                        today=date(2025, 1, 10))
        allocated += model.total_allocated(allocations)

    available = services.available_quantity(
        "SAFFRON-PINCH", unit_of_work.SqlAlchemyUnitOfWork(engine), today=date(2025, 1, 10))
    assert allocated + available == Decimal('1')

    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    with uow:
        transfers = uow.batches.list_transfers("SAFFRON-PINCH")
    assert [t.quantity for t in transfers] == [Decimal('0.001')] * 3
