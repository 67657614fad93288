import motor.motor_asyncio
from pymongo import ASCENDING, MongoClient

from gigmatch.utils.logging_config import get_logger
from gigmatch.utils.utils import load_settings

logger = get_logger(__name__)

_store_settings = load_settings().store

MONGO_DETAILS = _store_settings.mongo_details
DB_NAME = _store_settings.db_name

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

# Client creation is lazy; no connection is made until the first query
try:
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
    db = client[DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
users_coll = db["users"]
jobs_coll = db["gig_jobs"]
bids_coll = db["bids"]

EMBEDDING_CACHE_COLLECTION = "embedding_cache"

_sync_client = None


def get_sync_cache_collection():
    """Blocking handle on the shared embedding cache collection."""
    global _sync_client
    if _sync_client is None:
        # tz_aware so cache expiry times compare with aware UTC datetimes
        _sync_client = MongoClient(MONGO_DETAILS, tz_aware=True)
    return _sync_client[DB_NAME][EMBEDDING_CACHE_COLLECTION]


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    index_specs = [
        (users_coll, [("id", ASCENDING)], {"unique": True}),
        (users_coll, [("user_type", ASCENDING), ("profile_status", ASCENDING), ("profile_completed", ASCENDING)], {}),
        (jobs_coll, [("id", ASCENDING)], {"unique": True}),
        (jobs_coll, [("status", ASCENDING), ("employer_id", ASCENDING)], {}),
        (bids_coll, [("gig_worker_id", ASCENDING), ("job_id", ASCENDING)], {}),
    ]

    for coll, keys, options in index_specs:
        try:
            await coll.create_index(keys, **options)
            logger.debug(f"Created index on {coll.name}.{[k for k, _ in keys]}")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {coll.name}.{[k for k, _ in keys]} already exists")
            else:
                logger.warning(f"Could not create index on {coll.name}.{[k for k, _ in keys]}: {e}")

    logger.info("Database index initialization completed")
