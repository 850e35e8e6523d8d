import logging
import os
import sys


def get_postgres_uri():
    host = os.environ.get("DB_HOST", "localhost")
    port = 30000 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "example")
    user, db_name = "dispatch", "dispatch_db"
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_api_url():
    host = os.environ.get("API_HOST", "127.0.0.1")
    port = 5000 if host == "127.0.0.1" else 80
    return f"http://{host}:{port}"


def get_strategy_name():
    return os.environ.get("DISPATCH_STRATEGY", "fifo_with_expiry")


def get_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = None):
    logging.basicConfig(
        level=(level or get_log_level()).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )
