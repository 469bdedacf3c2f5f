import logging
from typing import Any, Dict

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)


def connect(settings: Settings) -> Database:
    # MongoClient connects lazily, so building the app never blocks on the server.
    client: MongoClient = MongoClient(settings.database_url, tz_aware=True)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db["user"].create_index([("email", ASCENDING)], unique=True)
    for name in ("customer", "employee", "product", "invoice"):
        db[name].create_index([("ownerId", ASCENDING), ("createdAt", DESCENDING)])
    logger.info("Indexes ensured on %s", db.name)


def ping(db: Database) -> Dict[str, Any]:
    return db.command("ping")
