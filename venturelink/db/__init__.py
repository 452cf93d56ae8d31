"""
Database module - MongoDB connection, collections and transactions.
"""
from venturelink.db.mongodb import (
    get_database,
    get_mongo_db,
    mongo_transaction,
    test_mongo_connection,
)

__all__ = [
    "get_database",
    "get_mongo_db",
    "mongo_transaction",
    "test_mongo_connection",
]
