"""
MongoDB connection for the value chart crawler (Singleton Pattern).

Collections:
- playerreports     (read)   player catalog searched per campaign
- seasonids         (read)   season images joined into search results
- prices            (write)  per-player grade prices
- eventvaluecharts  (write)  one document per event chart
"""
from pymongo import MongoClient
from pymongo.database import Database
from core.config import config
from core.logging import get_logger

# Initialize logger for database module
logger = get_logger("database")

APP_NAME = "fconline-value-chart"

_db_client: MongoClient | None = None
_database: Database | None = None


def get_db() -> Database:
    """
    Returns the shared database handle, connecting on first use.

    The server is pinged before the handle is cached, so an unreachable
    MongoDB fails the run before any page is scraped.

    Raises:
        pymongo.errors.PyMongoError: if the server cannot be reached.
    """
    global _db_client, _database

    if _database is not None:
        return _database

    logger.info(
        "Connecting to MongoDB",
        extra={"database": config.DATABASE_NAME, "timeout_ms": config.MONGO_TIMEOUT_MS},
    )
    client = MongoClient(
        config.MONGO_URI,
        serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
        appname=APP_NAME,
    )
    try:
        client.admin.command("ping")
    except Exception:
        logger.error("MongoDB ping failed", exc_info=True)
        client.close()
        raise

    _db_client = client
    _database = client[config.DATABASE_NAME]
    logger.info("Connected to MongoDB", extra={"database": config.DATABASE_NAME})
    return _database


def close_db():
    """Close the shared connection; no-op when never connected."""
    global _db_client, _database

    if _db_client is None:
        return

    try:
        _db_client.close()
        logger.info("Database connection closed")
    except Exception:
        logger.error("Error closing database connection", exc_info=True)
    finally:
        _db_client = None
        _database = None
