import logging

from flask import Flask, request, jsonify
from sqlalchemy import create_engine

from dispatch import config
from dispatch.domain import model
from dispatch.service_layer import services, unit_of_work

config.setup_logging()
logger = logging.getLogger(__name__)

engine = create_engine(config.get_postgres_uri())
app = Flask(__name__)


@app.errorhandler(model.InvalidArgument)
@app.errorhandler(services.InvalidSku)
@app.errorhandler(services.InsufficientStock)
def bad_request(e):
    logger.info('rejected %s: %s', request.path, e)
    return jsonify({'message': str(e)}), 400


def required_field(name):
    try:
        return request.json[name]
    except KeyError:
        raise model.InvalidArgument(f'{name} is required')


def allow_partial_flag():
    allow_partial = request.json.get('allow_partial', True)
    if not isinstance(allow_partial, bool):
        raise model.InvalidArgument(
            f'allow_partial must be true or false, got {allow_partial!r}')
    return allow_partial


@app.route("/add_batch", methods=['POST'])
def add_batch_endpoint():
    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    services.add_batch(
        required_field('ref'), required_field('sku'), required_field('qty'),
        required_field('received_date'), request.json.get('expiry_date'), uow
    )
    return 'OK', 201


@app.route("/dispatch", methods=["POST"])
def dispatch_endpoint():
    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    requested = model.as_quantity(required_field('qty'))
    allocations = services.dispatch(
        required_field('sku'), requested, required_field('destination'), uow,
        allow_partial=allow_partial_flag(),
    )
    return jsonify({
        'requested': str(requested),
        'allocated': str(model.total_allocated(allocations)),
        'allocations': [
            {'batch_id': a.batch_id, 'quantity': str(a.allocated_quantity)}
            for a in allocations
        ],
    }), 201


@app.route("/stock/<sku>", methods=["GET"])
def stock_endpoint(sku):
    uow = unit_of_work.SqlAlchemyUnitOfWork(engine)
    return jsonify({'sku': sku, 'available': str(services.available_quantity(sku, uow))}), 200
