import typing as t
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

ZERO = Decimal('0')
# scale and precision of the quantity columns in adapters/db_tables.py
QUANTITY_PRECISION = 12
QUANTITY_SCALE = 3
QUANTUM = Decimal(1).scaleb(-QUANTITY_SCALE)
MAX_QUANTITY = Decimal(10) ** (QUANTITY_PRECISION - QUANTITY_SCALE)
NEVER_EXPIRES = date.max


class InvalidArgument(ValueError):
    pass


def as_quantity(value, name: str = 'quantity') -> Decimal:
    """
    Приводит значение к неотрицательному Decimal не более чем с QUANTITY_SCALE знаками.
    float идёт через str(), чтобы 0.1 оставался 0.1, а не двоичным приближением.
    """
    if value is None:
        raise InvalidArgument(f'{name} is required')
    if isinstance(value, bool):
        raise InvalidArgument(f'{name} must be a number, got {value!r}')
    if isinstance(value, float):
        value = str(value)
    try:
        qty = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidArgument(f'{name} must be a number, got {value!r}')
    if not qty.is_finite():
        raise InvalidArgument(f'{name} must be finite, got {value!r}')
    if qty < ZERO:
        raise InvalidArgument(f'{name} cannot be negative, got {qty}')
    if qty >= MAX_QUANTITY:
        raise InvalidArgument(f'{name} must be below {MAX_QUANTITY}, got {qty}')
    if qty != qty.quantize(QUANTUM):
        raise InvalidArgument(
            f'{name} allows at most {QUANTITY_SCALE} decimal places, got {qty}')
    return qty


def as_date(value, name: str = 'date') -> date:
    if value is None:
        raise InvalidArgument(f'{name} is required')
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise InvalidArgument(f'{name} must be an ISO date, got {value!r}')
    raise InvalidArgument(f'{name} must be a date, got {value!r}')


def as_optional_date(value, name: str = 'date') -> t.Optional[date]:
    if value is None:
        return None
    return as_date(value, name)


@dataclass(frozen=True)
class BatchInfo:
    """Снимок партии на момент расчёта отгрузки. Не изменяется."""
    batch_id: int
    available_quantity: Decimal
    received_date: date
    expiry_date: t.Optional[date] = None

    def __post_init__(self):
        if isinstance(self.batch_id, bool) or not isinstance(self.batch_id, int):
            raise InvalidArgument(f'batch_id must be an integer, got {self.batch_id!r}')
        object.__setattr__(
            self, 'available_quantity',
            as_quantity(self.available_quantity, 'available_quantity'))
        object.__setattr__(
            self, 'received_date', as_date(self.received_date, 'received_date'))
        object.__setattr__(
            self, 'expiry_date', as_optional_date(self.expiry_date, 'expiry_date'))

    @property
    def effective_expiry(self) -> date:
        return self.expiry_date or NEVER_EXPIRES

    def with_available_quantity(self, qty: Decimal) -> 'BatchInfo':
        return BatchInfo(self.batch_id, qty, self.received_date, self.expiry_date)


@dataclass(frozen=True)
class BatchAllocation:
    batch_id: int
    allocated_quantity: Decimal

    def __post_init__(self):
        qty = as_quantity(self.allocated_quantity, 'allocated_quantity')
        if qty == ZERO:
            raise InvalidArgument('allocated_quantity must be > 0')
        object.__setattr__(self, 'allocated_quantity', qty)


def total_allocated(allocations: t.Iterable[BatchAllocation]) -> Decimal:
    return sum((a.allocated_quantity for a in allocations), ZERO)


SHELF = 'SHELF'
WEB = 'WEB'
DESTINATIONS = (SHELF, WEB)


@dataclass(frozen=True)
class StockTransfer:
    batch_reference: str
    sku: str
    quantity: Decimal
    destination: str
    transferred_on: date


class WarehouseBatch:
    def __init__(
            self, ref: str, sku: str, qty, received_date: date,
            expiry_date: t.Optional[date] = None, id: t.Optional[int] = None
    ):
        self.id = id
        self.reference = ref
        self.sku = sku
        self.quantity = as_quantity(qty)
        self.received_date = as_date(received_date, 'received_date')
        self.expiry_date = as_optional_date(expiry_date, 'expiry_date')

    def is_expired(self, on: date) -> bool:
        return self.expiry_date is not None and self.expiry_date < on

    def dispatch(self, qty: Decimal):
        qty = as_quantity(qty)
        if qty == ZERO:
            raise InvalidArgument('dispatched quantity must be > 0')
        if qty > self.quantity:
            raise InvalidArgument(
                f'cannot dispatch {qty} from batch {self.reference}, only {self.quantity} left')
        self.quantity -= qty

    def to_batch_info(self) -> BatchInfo:
        if self.id is None:
            raise InvalidArgument(f'batch {self.reference} has no id yet')
        return BatchInfo(self.id, self.quantity, self.received_date, self.expiry_date)

    def __eq__(self, other):
        if not isinstance(other, WarehouseBatch):
            return False
        return other.reference == self.reference

    def __hash__(self):
        return hash(self.reference)

    def __repr__(self):
        return f'<WarehouseBatch {self.reference} {self.sku} qty={self.quantity}>'
