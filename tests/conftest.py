from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Sequence
from uuid import uuid4

import pytest

from src.domain.entities.demand import (
    DemandLevel,
    DemandPrediction,
    HistoricalDemandRecord,
    PredictionTimeframe,
    SpecialEvent,
)
from src.domain.entities.forecast_model import ModelWeights

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

FIXED_NOW = datetime(2024, 6, 12, 14, 7, tzinfo=timezone.utc)


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def fixed_clock(fixed_now: datetime) -> Callable[[], datetime]:
    return lambda: fixed_now


def make_prediction(**overrides: Any) -> DemandPrediction:
    values: Dict[str, Any] = {
        "h3_index": "872a1072bffffff",
        "prediction_time": FIXED_NOW + timedelta(minutes=23),
        "timeframe": PredictionTimeframe.MIN_30,
        "predicted_rides": 18.0,
        "demand_level": DemandLevel.HIGH,
        "confidence": 0.8,
        "recommended_drivers": 8,
        "expected_surge": 1.4,
        "hotspot_score": 60.0,
        "reposition_priority": 7,
        "feature_contributions": ModelWeights().to_contributions(),
        "generated_at": FIXED_NOW,
    }
    values.update(overrides)
    return DemandPrediction(**values)


def make_record(**overrides: Any) -> HistoricalDemandRecord:
    values: Dict[str, Any] = {
        "h3_index": "872a1072bffffff",
        "timestamp": FIXED_NOW - timedelta(minutes=7),
        "hour": 14,
        "day_of_week": 3,
        "ride_requests": 10,
        "completed_rides": 9,
        "available_drivers": 4,
    }
    values.update(overrides)
    return HistoricalDemandRecord(**values)


def make_event(**overrides: Any) -> SpecialEvent:
    values: Dict[str, Any] = {
        "name": "Stadium concert",
        "event_type": "concert",
        "latitude": 40.7505,
        "longitude": -73.9934,
        "h3_index": "872a1072bffffff",
        "start_time": FIXED_NOW + timedelta(hours=1),
        "end_time": FIXED_NOW + timedelta(hours=4),
        "expected_attendees": 20000,
    }
    values.update(overrides)
    return SpecialEvent(**values)


@pytest.fixture()
def sample_prediction() -> DemandPrediction:
    return make_prediction()


@pytest.fixture()
def sample_record() -> HistoricalDemandRecord:
    return make_record()


@pytest.fixture()
def sample_event() -> SpecialEvent:
    return make_event()


class FakeCursor:
    def __init__(self, documents: Sequence[Dict[str, Any]]):
        self._documents = list(documents)
        self._skip = 0
        self._limit: int | None = None

    def sort(self, key: str | None = None, direction: int = 1) -> "FakeCursor":
        if key:
            self._documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def skip(self, amount: int) -> "FakeCursor":
        self._skip = amount
        return self

    def limit(self, amount: int) -> "FakeCursor":
        # pymongo treats a limit of 0 as "no limit"
        self._limit = amount or None
        return self

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        docs = self._documents[self._skip :]
        if self._limit is not None:
            docs = docs[: self._limit]
        return iter(docs)


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$gt": lambda value, bound: value is not None and value > bound,
    "$gte": lambda value, bound: value is not None and value >= bound,
    "$lt": lambda value, bound: value is not None and value < bound,
    "$lte": lambda value, bound: value is not None and value <= bound,
    "$in": lambda value, options: value in options,
    "$ne": lambda value, other: value != other,
}


class FakeCollection:
    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []
        self.inserts: List[Dict[str, Any]] = []
        self.last_query: Dict[str, Any] | None = None
        self.dropped_indexes: List[str] = []
        self.created_indexes: List[tuple[Any, ...]] = []

    def find_one(self, query: Dict[str, Any]) -> Dict[str, Any] | None:
        self.last_query = query
        for document in self.documents:
            if self._matches(document, query):
                return document
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        self.last_query = query
        return FakeCursor([doc for doc in self.documents if self._matches(doc, query)])

    def insert_one(self, document: Dict[str, Any]) -> Any:
        self.inserts.append(document)
        self.documents.append(document)
        return SimpleNamespace(acknowledged=True, inserted_id=document.get("id"))

    def replace_one(
        self, query: Dict[str, Any], document: Dict[str, Any], upsert: bool = False
    ) -> Any:
        for position, existing in enumerate(self.documents):
            if self._matches(existing, query):
                self.documents[position] = document
                return SimpleNamespace(matched_count=1, acknowledged=True)
        if upsert:
            self.documents.append(document)
        return SimpleNamespace(matched_count=0, acknowledged=True)

    def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> Any:
        for document in self.documents:
            if self._matches(document, query):
                document.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, acknowledged=True)
        return SimpleNamespace(matched_count=0, acknowledged=True)

    def delete_one(self, query: Dict[str, Any]) -> Any:
        for document in self.documents:
            if self._matches(document, query):
                self.documents.remove(document)
                return SimpleNamespace(deleted_count=1, acknowledged=True)
        return SimpleNamespace(deleted_count=0, acknowledged=True)

    def delete_many(self, query: Dict[str, Any]) -> Any:
        kept = [doc for doc in self.documents if not self._matches(doc, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted, acknowledged=True)

    def drop_index(self, index_name: str) -> None:
        self.dropped_indexes.append(index_name)

    def create_index(self, keys: Any, name: str | None = None, **kwargs: Any) -> Any:
        self.created_indexes.append((keys, name, kwargs))
        return name or keys

    @staticmethod
    def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, condition in query.items():
            value = document.get(key)
            is_operator = isinstance(condition, dict) and any(
                k.startswith("$") for k in condition
            )
            if is_operator:
                for operator, operand in condition.items():
                    if not _OPERATORS[operator](value, operand):
                        return False
            elif value != condition:
                return False
        return True


class FakeMongoDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.closed = False

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def find_one(self, collection_name: str, query: Dict[str, Any]) -> Any:
        return self.get_collection(collection_name).find_one(query)

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: str | None = None,
        sort_direction: int = 1,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        cursor = self.get_collection(collection_name).find(query)
        cursor.sort(sort_by, sort_direction)
        cursor.skip(skip)
        cursor.limit(limit)
        return list(cursor)

    async def insert_one(self, collection_name: str, document: Dict[str, Any]) -> Any:
        self.get_collection(collection_name).insert_one(document)
        return document

    async def replace_one(
        self,
        collection_name: str,
        query: Dict[str, Any],
        document: Dict[str, Any],
        upsert: bool = False,
    ) -> Any:
        result = self.get_collection(collection_name).replace_one(
            query, document, upsert=upsert
        )
        if result.matched_count == 0 and not upsert:
            raise Exception(f"Document not found in {collection_name}")
        return document

    async def update_one(
        self, collection_name: str, query: Dict[str, Any], fields: Dict[str, Any]
    ) -> bool:
        result = self.get_collection(collection_name).update_one(
            query, {"$set": fields}
        )
        return result.matched_count > 0

    async def delete_one(self, collection_name: str, query: Dict[str, Any]) -> Any:
        result = self.get_collection(collection_name).delete_one(query)
        if result.deleted_count == 0:
            raise Exception(f"Document not found in {collection_name}")
        return None

    async def delete_many(self, collection_name: str, query: Dict[str, Any]) -> int:
        return self.get_collection(collection_name).delete_many(query).deleted_count

    async def create_indexes(self) -> None:  # pragma: no cover - stub for tests
        pass

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_mongo_database() -> FakeMongoDatabase:
    return FakeMongoDatabase()
