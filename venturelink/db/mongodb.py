"""
MongoDB Connection Utility

MongoDB stores every entity of the marketplace:
- users (with a profile sub-document keyed by userType)
- interactions (investor <-> startup requests)
- connections and nudges (startup outreach, investor connections)
- notifications

WHY MongoDB for these?
- Profiles differ per user type: a document per user fits naturally
- Interaction lifecycle needs conditional updates, not joins
- Partial unique indexes express "one live request per pair"
"""
import logging
from contextlib import contextmanager
from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from venturelink.core.config import get_settings
from venturelink.models.interaction import LIVE_STATUSES

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the application database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_database():
    """
    Dependency for FastAPI route injection.
    Tests override this to hand out an in-memory database.
    """
    return get_mongo_db()


def get_collection(name: str, db: Optional[Database] = None) -> Collection:
    """Get a specific collection (from the default database unless one is given)."""
    db = db if db is not None else get_mongo_db()
    return db[name]


def test_mongo_connection(db: Optional[Database] = None) -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        db = db if db is not None else get_mongo_db()
        # ping command checks connection
        db.command("ping")
        return True
    except Exception as e:
        logger.error(f"MongoDB connection failed: {e}")
        return False


@contextmanager
def mongo_transaction(db: Database):
    """
    Run a block inside a multi-document transaction.

    Usage:
        with mongo_transaction(db) as session:
            collection.update_one(..., session=session)

    Commits when the block exits normally, aborts and re-raises otherwise.
    With transactions disabled in settings the block gets session=None and
    each write commits on its own.
    """
    if not get_settings().mongodb_transactions:
        yield None
        return

    with db.client.start_session() as session:
        with session.start_transaction():
            yield session


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "interactions": "interactions",
    "connections": "connections",
    "nudges": "nudges",
    "notifications": "notifications",
}


def init_mongo_indexes(db: Optional[Database] = None):
    """
    Create indexes for uniqueness invariants and query performance.
    Call this once during app startup.
    """
    db = db if db is not None else get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True, sparse=True)
    users.create_index("userType")
    users.create_index("profile.startup.fundingGoal.amount")
    users.create_index("profile.startup.industry1")
    users.create_index("profile.startup.industry2")
    users.create_index("profile.startup.stage")

    interactions = db[COLLECTIONS["interactions"]]
    interactions.create_index("sender")
    interactions.create_index("receiver")
    interactions.create_index("status")
    interactions.create_index("expiresAt")
    # At most one live (pending/accepted) interaction per ordered pair;
    # rejected and expired ones do not block a new request
    interactions.create_index(
        [("sender", ASCENDING), ("receiver", ASCENDING), ("status", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": {"$in": LIVE_STATUSES}},
    )

    # One connection / nudge per pair, ever
    db[COLLECTIONS["connections"]].create_index(
        [("sender", ASCENDING), ("receiver", ASCENDING)], unique=True
    )
    nudges = db[COLLECTIONS["nudges"]]
    nudges.create_index([("sender", ASCENDING), ("receiver", ASCENDING)], unique=True)
    nudges.create_index("expiresAt")

    notifications = db[COLLECTIONS["notifications"]]
    notifications.create_index([("userId", ASCENDING), ("read", ASCENDING)])
    notifications.create_index([("createdAt", DESCENDING)])

    logger.info("MongoDB indexes created successfully")
