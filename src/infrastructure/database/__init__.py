"""
Database package - Infrastructure Layer

This package contains the MongoDB client used by the demand forecast repository.
It provides the connection wrapper, query helpers and index management
needed by the application.
"""

from src.infrastructure.database.mongo_database import MongoDatabase

__all__ = ["MongoDatabase"]
