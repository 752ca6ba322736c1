"""
MongoDB Database - Infrastructure Layer

This module provides a MongoDB database client for interacting with MongoDB.
It handles connection, collections, and basic CRUD operations.
"""

from typing import Any, Dict, List, Optional

import pymongo.errors
import structlog
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

logger = structlog.get_logger(__name__)

HISTORICAL_DEMAND_COLLECTION = "historical_demand"
PREDICTIONS_COLLECTION = "demand_predictions"
SPECIAL_EVENTS_COLLECTION = "special_events"


class MongoDatabase:
    """MongoDB database client."""

    def __init__(self, mongo_uri: str, db_name: str):
        """
        Initialize the MongoDB database client.

        Datetimes are read back timezone-aware (UTC).

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Name of the database to use
        """
        self.client: MongoClient = MongoClient(mongo_uri, tz_aware=True)
        self.db: Database = self.client[db_name]

    def get_collection(self, collection_name: str) -> Collection:
        """
        Get a collection from the database.

        Args:
            collection_name: Name of the collection

        Returns:
            MongoDB collection
        """
        return self.db[collection_name]

    async def find_one(
        self, collection_name: str, query: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Find a single document in a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match documents

        Returns:
            The document if found, None otherwise
        """
        return self.db[collection_name].find_one(query)

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: Optional[str] = None,
        sort_direction: int = ASCENDING,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Find multiple documents in a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match documents
            sort_by: Field to sort by
            sort_direction: Sort direction (1 for ascending, -1 for descending)
            skip: Number of documents to skip
            limit: Maximum number of documents to return (0 means no limit)

        Returns:
            List of documents
        """
        cursor = self.db[collection_name].find(query)

        if sort_by:
            cursor = cursor.sort(sort_by, sort_direction)

        cursor = cursor.skip(skip).limit(limit)

        return list(cursor)

    async def insert_one(
        self, collection_name: str, document: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Insert a document into a collection.

        Args:
            collection_name: Name of the collection
            document: Document to insert

        Returns:
            The inserted document with any generated fields

        Raises:
            Exception: If the insert fails
        """
        result = self.db[collection_name].insert_one(document)
        if not result.acknowledged:
            raise Exception(f"Failed to insert document in {collection_name}")
        return document

    async def replace_one(
        self,
        collection_name: str,
        query: Dict[str, Any],
        document: Dict[str, Any],
        upsert: bool = False,
    ) -> Dict[str, Any]:
        """
        Replace a document in a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match document to replace
            document: New document
            upsert: Insert the document when nothing matches

        Returns:
            The new document

        Raises:
            Exception: If the document does not exist (without upsert) or the
                replace fails
        """
        result = self.db[collection_name].replace_one(query, document, upsert=upsert)
        if not result.acknowledged:
            raise Exception(f"Failed to replace document in {collection_name}")
        if result.matched_count == 0 and not upsert:
            raise Exception(f"Document not found in {collection_name}")
        return document

    async def update_one(
        self, collection_name: str, query: Dict[str, Any], fields: Dict[str, Any]
    ) -> bool:
        """
        Set fields on the first document matching a query.

        Args:
            collection_name: Name of the collection
            query: Query to match the document
            fields: Field values to set

        Returns:
            True if a document matched the query
        """
        result = self.db[collection_name].update_one(query, {"$set": fields})
        if not result.acknowledged:
            raise Exception(f"Failed to update document in {collection_name}")
        return result.matched_count > 0

    async def delete_one(self, collection_name: str, query: Dict[str, Any]) -> None:
        """
        Delete a document from a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match document to delete

        Raises:
            Exception: If the document does not exist or the delete fails
        """
        result = self.db[collection_name].delete_one(query)
        if result.deleted_count == 0:
            raise Exception(f"Document not found in {collection_name}")
        if not result.acknowledged:
            raise Exception(f"Failed to delete document in {collection_name}")

    async def delete_many(self, collection_name: str, query: Dict[str, Any]) -> int:
        """
        Delete every document matching a query.

        Returns:
            Number of deleted documents
        """
        result = self.db[collection_name].delete_many(query)
        if not result.acknowledged:
            raise Exception(f"Failed to delete documents in {collection_name}")
        return result.deleted_count

    def close(self) -> None:
        """Close the database connection."""
        self.client.close()

    def _safe_drop_index(self, collection_name: str, index_name: str) -> None:
        """
        Safely drop an index if it exists.

        Args:
            collection_name: Name of the collection
            index_name: Name of the index to drop
        """
        try:
            self.db[collection_name].drop_index(index_name)
        except pymongo.errors.OperationFailure:
            # Index doesn't exist, nothing to do
            pass

    async def create_indexes(self) -> None:
        """
        Create all necessary indexes for the application.
        This is an async method to be called during application startup.
        """
        history = self.db[HISTORICAL_DEMAND_COLLECTION]
        self._safe_drop_index(HISTORICAL_DEMAND_COLLECTION, "cell_timestamp_idx")
        self._safe_drop_index(HISTORICAL_DEMAND_COLLECTION, "cell_hour_day_idx")
        try:
            history.create_index(
                [("h3_index", ASCENDING), ("timestamp", ASCENDING)],
                name="cell_timestamp_idx",
                unique=True,
            )
            history.create_index(
                [
                    ("h3_index", ASCENDING),
                    ("hour", ASCENDING),
                    ("day_of_week", ASCENDING),
                ],
                name="cell_hour_day_idx",
                background=True,
            )
        except pymongo.errors.OperationFailure as e:
            logger.warning(
                "mongo.indexes.failed",
                collection=HISTORICAL_DEMAND_COLLECTION,
                error=str(e),
            )

        predictions = self.db[PREDICTIONS_COLLECTION]
        self._safe_drop_index(PREDICTIONS_COLLECTION, "cell_time_timeframe_idx")
        self._safe_drop_index(PREDICTIONS_COLLECTION, "timeframe_score_idx")
        self._safe_drop_index(PREDICTIONS_COLLECTION, "prediction_id_idx")
        try:
            predictions.create_index(
                [
                    ("h3_index", ASCENDING),
                    ("prediction_time", ASCENDING),
                    ("timeframe", ASCENDING),
                ],
                name="cell_time_timeframe_idx",
                unique=True,
            )
            predictions.create_index(
                [("timeframe", ASCENDING), ("hotspot_score", DESCENDING)],
                name="timeframe_score_idx",
                background=True,
            )
            predictions.create_index("id", name="prediction_id_idx", unique=True)
        except pymongo.errors.OperationFailure as e:
            logger.warning(
                "mongo.indexes.failed", collection=PREDICTIONS_COLLECTION, error=str(e)
            )

        events = self.db[SPECIAL_EVENTS_COLLECTION]
        self._safe_drop_index(SPECIAL_EVENTS_COLLECTION, "event_window_idx")
        try:
            events.create_index(
                [("start_time", ASCENDING), ("end_time", ASCENDING)],
                name="event_window_idx",
                background=True,
            )
        except pymongo.errors.OperationFailure as e:
            logger.warning(
                "mongo.indexes.failed",
                collection=SPECIAL_EVENTS_COLLECTION,
                error=str(e),
            )
