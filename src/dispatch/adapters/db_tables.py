import sqlalchemy as sa

from dispatch.domain.model import QUANTITY_PRECISION, QUANTITY_SCALE

metadata = sa.MetaData()

batches = sa.Table(
    'batches', metadata,
    sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
    sa.Column('reference', sa.String(255), unique=True, nullable=False),
    sa.Column('sku', sa.String(255), nullable=False),
    sa.Column('quantity', sa.Numeric(QUANTITY_PRECISION, QUANTITY_SCALE), nullable=False),
    sa.Column('received_date', sa.Date, nullable=False),
    sa.Column('expiry_date', sa.Date, nullable=True),
)

sa.Index('idx_batches_sku', batches.c.sku)

stock_transfers = sa.Table(
    'stock_transfers', metadata,
    sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
    sa.Column('batch_id', sa.ForeignKey('batches.id'), nullable=False),
    sa.Column('sku', sa.String(255), nullable=False),
    sa.Column('quantity', sa.Numeric(QUANTITY_PRECISION, QUANTITY_SCALE), nullable=False),
    sa.Column('destination', sa.String(16), nullable=False),
    sa.Column('transferred_on', sa.Date, nullable=False),
)
