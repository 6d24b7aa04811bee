"""
Record store - the only database surface the analytics engine sees.

Views receive a store and call aggregate()/distinct() with collection names
and pipelines built by services.pipelines. Store failures (PyMongoError) are
not caught here; they propagate to the route and the app error handler.
"""

from typing import Any, Dict, List, Optional, Protocol

from pymongo.database import Database


class RecordStore(Protocol):
    def aggregate(self, collection: str, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...

    def distinct(self, collection: str, field: str, query: Optional[Dict[str, Any]] = None) -> List[Any]:
        ...


class MongoRecordStore:
    """RecordStore backed by a pymongo (or mongomock) Database."""

    def __init__(self, database: Database, allow_disk_use: bool = True):
        self.database = database
        self.allow_disk_use = allow_disk_use

    def aggregate(self, collection: str, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        cursor = self.database[collection].aggregate(pipeline, allowDiskUse=self.allow_disk_use)
        return list(cursor)

    def distinct(self, collection: str, field: str, query: Optional[Dict[str, Any]] = None) -> List[Any]:
        return self.database[collection].distinct(field, query or {})

    def ping(self) -> bool:
        self.database.client.admin.command('ping')
        return True
