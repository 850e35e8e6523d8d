import time

import pytest
import requests

from dispatch import config


@pytest.fixture
def client(engine, monkeypatch):
    from dispatch.entrypoints import flask_app

    monkeypatch.setattr(flask_app, 'engine', engine)
    flask_app.app.config['TESTING'] = True
    with flask_app.app.test_client() as client:
        yield client


def wait_for_webapp_to_come_up(timeout=2):
    deadline = time.time() + timeout
    url = config.get_api_url()
    while time.time() < deadline:
        try:
            return requests.get(url)
        except requests.exceptions.ConnectionError:
            time.sleep(0.5)
    return None


@pytest.fixture
def api_url():
    if wait_for_webapp_to_come_up() is None:
        pytest.skip("API is not running at " + config.get_api_url())
    return config.get_api_url()
