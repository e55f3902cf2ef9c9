"""MongoDB Client - Shared connection, collections and indexes"""
from typing import Any, Dict, List, Optional, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

_client: Optional[MongoClient] = None
_database: Optional[Database] = None

# (keys, options) per collection; collection names come from settings
IndexSpec = Tuple[Any, Dict[str, Any]]


def _index_specs() -> Dict[str, List[IndexSpec]]:
    return {
        settings.job_orders_collection: [
            ("id", {"unique": True}),
            ([("branch_id", ASCENDING), ("status", ASCENDING)], {}),
            ("created_at", {}),
        ],
        settings.job_status_history_collection: [
            ("id", {"unique": True}),
            ([("job_order_id", ASCENDING), ("changed_at", ASCENDING)], {}),
        ],
        # Audit log lists newest first and filters on any of these fields
        settings.audit_collection: [
            ("id", {"unique": True}),
            ([("created_at", DESCENDING)], {}),
            ("action", {}),
            ("entity_type", {}),
            ("status", {}),
            ("user_id", {"sparse": True}),
        ],
    }


def get_client() -> MongoClient:
    """Lazily connect; timestamps come back timezone-aware (UTC)"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB at {settings.mongo_uri}")
        client = MongoClient(
            settings.mongo_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            client.admin.command("ping")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            client.close()
            raise
        _client = client
    return _client


def get_database() -> Database:
    global _database
    if _database is None:
        _database = get_client()[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection of the configured database"""
    return get_database()[name]


def close_connection() -> None:
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes(database: Optional[Database] = None) -> None:
    """Ensure indexes for job orders, status history and audit logs"""
    db = database if database is not None else get_database()
    for collection_name, specs in _index_specs().items():
        collection = db[collection_name]
        for keys, options in specs:
            collection.create_index(keys, **options)
        logger.info(f"Indexes ensured on {collection_name} ({len(specs)})")


def health_check() -> Dict[str, Any]:
    """Ping the database; never raises"""
    try:
        get_client().admin.command("ping")
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {"status": "unhealthy", "database": settings.mongo_db, "error": str(e)}
    return {"status": "healthy", "database": settings.mongo_db}
